"""APScheduler wrapper driving crawl rounds and config polling."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..logging_conf import configure_logging

CONFIG_WATCH_JOB_ID = "config::watch"


class APSchedulerAdapter:
    """Chain one-shot round jobs and keep a config watcher running.

    Each round schedules its successor once it finishes, so the pause always
    starts after the last subscription was processed.
    """

    def __init__(self, scheduler=None) -> None:
        self.scheduler = scheduler or BlockingScheduler(timezone=timezone.utc)
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False
        self._round_counter = 0

    def start(self) -> None:
        """Start the scheduler; blocks until shutdown with the default scheduler."""

        if not self.started:
            self.started = True
            self.logger.info("apscheduler_started")
            self.scheduler.start()

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_round(self, callback: Callable[[], None], delay_minutes: float = 0) -> datetime:
        run_date = datetime.now(timezone.utc) + timedelta(minutes=delay_minutes)
        self._round_counter += 1
        # A fresh id per round: the finished job is removed after our callback returns.
        job_id = f"round::{self._round_counter}"
        self.scheduler.add_job(
            callback,
            trigger=DateTrigger(run_date=run_date),
            id=job_id,
            misfire_grace_time=None,
        )
        self.logger.info("round_scheduled", job_id=job_id, run_date=run_date.isoformat())
        return run_date

    def watch_config(self, callback: Callable[[], object], seconds: float) -> None:
        self.scheduler.add_job(
            callback,
            trigger=IntervalTrigger(seconds=float(seconds)),
            id=CONFIG_WATCH_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("config_watch_scheduled", seconds=seconds)

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "CONFIG_WATCH_JOB_ID"]
