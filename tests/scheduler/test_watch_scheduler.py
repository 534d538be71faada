from __future__ import annotations

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from launch_watch.config import ScheduleConfig, ScheduleType
from launch_watch.scheduler import WATCH_JOB_ID, APSchedulerAdapter


def test_build_triggers() -> None:
    adapter = APSchedulerAdapter()

    assert isinstance(adapter._build_trigger(ScheduleConfig(type=ScheduleType.CRON, value="*/5 * * * *")), CronTrigger)
    default = adapter._build_trigger(ScheduleConfig())
    assert isinstance(default, IntervalTrigger)
    assert default.interval.total_seconds() == 300
    kwargs = adapter._build_trigger(ScheduleConfig(type=ScheduleType.INTERVAL, value={"minutes": 2}))
    assert kwargs.interval.total_seconds() == 120


def test_build_trigger_rejects_bad_interval() -> None:
    schedule = ScheduleConfig()
    schedule.value = "fast"

    with pytest.raises(ValueError):
        APSchedulerAdapter()._build_trigger(schedule)


def test_schedule_watch_registers_single_job() -> None:
    calls: list[dict] = []

    class StubScheduler:
        def add_job(self, callback, trigger, id, replace_existing, max_instances, coalesce):  # noqa: A002
            calls.append(
                {
                    "id": id,
                    "callback": callback,
                    "trigger": trigger,
                    "replace_existing": replace_existing,
                    "max_instances": max_instances,
                }
            )

        def start(self):
            calls.append({"event": "started"})

        def shutdown(self, wait=False):  # noqa: ARG002
            calls.append({"event": "shutdown"})

        def remove_job(self, job_id):
            calls.append({"event": "remove", "id": job_id})

        def get_jobs(self):
            return []

    def tick() -> None:
        return None

    adapter = APSchedulerAdapter(scheduler=StubScheduler())
    adapter.schedule_watch(ScheduleConfig(), tick)
    adapter.start()
    adapter.remove_watch()
    adapter.shutdown()

    assert calls[0]["id"] == WATCH_JOB_ID
    assert calls[0]["callback"] is tick
    assert calls[0]["max_instances"] == 1
    assert isinstance(calls[0]["trigger"], IntervalTrigger)
    assert [call.get("event") for call in calls[1:]] == ["started", "remove", "shutdown"]
    assert adapter.list_jobs() == []
