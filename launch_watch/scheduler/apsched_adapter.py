"""APScheduler wrapper driving the periodic watcher."""

from __future__ import annotations

from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType
from ..logging_conf import configure_logging

WATCH_JOB_ID = "launch-watch::run"


class APSchedulerAdapter:
    """Manage the single watch job on a background scheduler."""

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_watch(self, schedule: ScheduleConfig, callback: Callable[[], object]) -> None:
        trigger = self._build_trigger(schedule)
        # overlapping runs would race on the seen-set
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=WATCH_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("job_scheduled", job=WATCH_JOB_ID, schedule=schedule.model_dump(mode="json"))

    def remove_watch(self) -> None:
        try:
            self.scheduler.remove_job(WATCH_JOB_ID)
        except Exception:  # noqa: BLE001
            self.logger.warning("job_remove_failed", job=WATCH_JOB_ID)

    def _build_trigger(self, schedule: ScheduleConfig):
        if schedule.type is ScheduleType.CRON:
            return CronTrigger.from_crontab(str(schedule.value))
        if schedule.type is ScheduleType.INTERVAL:
            if isinstance(schedule.value, (int, float)):
                return IntervalTrigger(seconds=float(schedule.value))
            if isinstance(schedule.value, dict):
                return IntervalTrigger(**schedule.value)
            raise ValueError("Interval schedule requires seconds or kwargs dict")
        raise ValueError(f"Unknown schedule type: {schedule.type}")

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


__all__ = ["APSchedulerAdapter", "WATCH_JOB_ID"]
