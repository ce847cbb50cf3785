from __future__ import annotations

from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from rental_crawler.scheduler import APSchedulerAdapter
from rental_crawler.scheduler.apsched_adapter import CONFIG_WATCH_JOB_ID


class StubScheduler:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    def add_job(self, callback, trigger, id, **kwargs):  # noqa: ANN001, A002
        self.calls.append({"callback": callback, "trigger": trigger, "id": id, **kwargs})

    def get_jobs(self):
        return []

    def start(self):
        self.calls.append({"event": "started"})

    def shutdown(self, wait=False):  # noqa: ARG002
        self.calls.append({"event": "shutdown"})


def _round() -> None:
    return None


def test_schedule_round_uses_unique_one_shot_jobs() -> None:
    stub = StubScheduler()
    adapter = APSchedulerAdapter(scheduler=stub)

    before = datetime.now(timezone.utc)
    first = adapter.schedule_round(_round)
    second = adapter.schedule_round(_round, delay_minutes=10)

    assert [call["id"] for call in stub.calls] == ["round::1", "round::2"]
    assert all(isinstance(call["trigger"], DateTrigger) for call in stub.calls)
    assert all(call["misfire_grace_time"] is None for call in stub.calls)
    assert before <= first < before + timedelta(minutes=1)
    assert second - first >= timedelta(minutes=9, seconds=59)


def test_watch_config_registers_single_interval_job() -> None:
    stub = StubScheduler()
    adapter = APSchedulerAdapter(scheduler=stub)

    adapter.watch_config(_round, seconds=5)

    [call] = stub.calls
    assert call["id"] == CONFIG_WATCH_JOB_ID
    assert isinstance(call["trigger"], IntervalTrigger)
    assert call["trigger"].interval.total_seconds() == 5
    assert call["replace_existing"] is True
    assert call["max_instances"] == 1


def test_start_and_shutdown_are_idempotent() -> None:
    stub = StubScheduler()
    adapter = APSchedulerAdapter(scheduler=stub)

    adapter.shutdown()
    adapter.start()
    adapter.start()
    adapter.shutdown()
    adapter.shutdown()

    assert stub.calls == [{"event": "started"}, {"event": "shutdown"}]


def test_list_jobs_with_real_scheduler() -> None:
    adapter = APSchedulerAdapter(scheduler=BackgroundScheduler(timezone=timezone.utc))
    adapter.watch_config(_round, seconds=5)
    adapter.schedule_round(_round, delay_minutes=30)

    jobs = {job["id"]: job for job in adapter.list_jobs()}

    assert set(jobs) == {CONFIG_WATCH_JOB_ID, "round::1"}
    assert "interval" in jobs[CONFIG_WATCH_JOB_ID]["trigger"]
