"""Engine components wiring render -> extract -> dedup -> notify."""

from .deadline import Deadline
from .dedup import Decision, DeduplicationEngine, Inserted, Rejected, Replaced
from .extractor import AbortRound, Continue, ListingExtractor
from .notifier import WebhookNotifier, build_content
from .renderer import PlaywrightRenderer, RenderedPage, Renderer

__all__ = [
    "AbortRound",
    "Continue",
    "Deadline",
    "Decision",
    "DeduplicationEngine",
    "Inserted",
    "ListingExtractor",
    "PlaywrightRenderer",
    "Rejected",
    "RenderedPage",
    "Renderer",
    "Replaced",
    "WebhookNotifier",
    "build_content",
]
