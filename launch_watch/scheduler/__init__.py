"""Periodic triggering of watch runs."""

from .apsched_adapter import WATCH_JOB_ID, APSchedulerAdapter

__all__ = ["APSchedulerAdapter", "WATCH_JOB_ID"]
