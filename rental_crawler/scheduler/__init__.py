"""Round scheduling on top of APScheduler."""

from .apsched_adapter import APSchedulerAdapter

__all__ = ["APSchedulerAdapter"]
