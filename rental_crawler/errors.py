"""Exception hierarchy shared across the crawler."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for crawler specific failures."""


class ConfigError(CrawlerError):
    """Configuration is missing, unreadable or fails validation."""


class StoreError(CrawlerError):
    """The listing store could not be opened or a write failed."""


class DuplicateListingError(StoreError):
    """A live row with the same external id already exists."""


class RenderError(CrawlerError):
    """A rendering or DOM query operation failed."""


class ElementNotFound(RenderError):
    """A selector matched nothing inside the queried scope."""


class DeadlineExceeded(CrawlerError):
    """The deadline attached to a rendering operation has elapsed."""


__all__ = [
    "ConfigError",
    "CrawlerError",
    "DeadlineExceeded",
    "DuplicateListingError",
    "ElementNotFound",
    "RenderError",
    "StoreError",
]
