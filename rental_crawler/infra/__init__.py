"""Infra layer utilities (listing storage)."""

from .storage import ListingStore, SQLiteManager

__all__ = ["ListingStore", "SQLiteManager"]
