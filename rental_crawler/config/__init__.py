"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, sample_config
from .models import AppConfig, SelectorConfig, Subscription

__all__ = [
    "AppConfig",
    "ConfigLocator",
    "ConfigRepository",
    "SelectorConfig",
    "Subscription",
    "sample_config",
]
