"""Rental listing crawler: render, extract, deduplicate, notify."""

__version__ = "0.1.0"
