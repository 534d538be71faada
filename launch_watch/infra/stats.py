"""Persisted run aggregates: counters plus a capped recent-runs log."""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import Lock
from typing import Any

import structlog

from ..config import StatsSettings


def _iso(value: datetime | None) -> str:
    moment = value or datetime.now(timezone.utc)
    return moment.isoformat()


def run_entry(summary: Any) -> dict[str, Any]:
    """Log entry for one run; ``summary`` needs ``sent``, ``started_at`` and ``success``."""

    return {
        "timestamp": _iso(getattr(summary, "started_at", None)),
        "tokens_sent": int(getattr(summary, "sent", 0)),
        "success": bool(getattr(summary, "success", True)),
    }


class StatsStore(ABC):
    backend = "abstract"

    def __init__(self, settings: StatsSettings | None = None, logger=None) -> None:
        self.settings = settings or StatsSettings()
        self.logger = logger or structlog.get_logger("launch_watch.stats")

    @abstractmethod
    def record_run(self, summary: Any) -> bool: ...

    @abstractmethod
    def get_stats(self) -> dict[str, Any]: ...

    @abstractmethod
    def recent_runs(self, limit: int = 10) -> list[dict[str, Any]]: ...

    def info(self) -> dict[str, Any]:
        return {"backend": self.backend, "recent_runs": len(self.recent_runs(self.settings.max_runs))}

    @staticmethod
    def _normalise(raw: dict[str, Any]) -> dict[str, Any]:
        return {
            "total_checks": int(raw.get("total_checks") or 0),
            "total_tokens_sent": int(raw.get("total_tokens_sent") or 0),
            "total_detected": int(raw.get("total_detected") or 0),
            "last_execution": raw.get("last_execution") or None,
        }


class MemoryStatsStore(StatsStore):
    backend = "memory"

    def __init__(self, settings: StatsSettings | None = None, logger=None) -> None:
        super().__init__(settings, logger)
        self._stats: dict[str, Any] = {}
        self._runs: list[dict[str, Any]] = []
        self._lock = Lock()

    def record_run(self, summary: Any) -> bool:
        entry = run_entry(summary)
        with self._lock:
            self._stats["total_checks"] = int(self._stats.get("total_checks", 0)) + 1
            self._stats["total_tokens_sent"] = int(self._stats.get("total_tokens_sent", 0)) + entry["tokens_sent"]
            self._stats["total_detected"] = int(self._stats.get("total_detected", 0)) + int(
                getattr(summary, "extracted", 0)
            )
            self._stats["last_execution"] = entry["timestamp"]
            self._runs.insert(0, entry)
            del self._runs[self.settings.max_runs :]
        return True

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return self._normalise(dict(self._stats))

    def recent_runs(self, limit: int = 10) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(entry) for entry in self._runs[:limit]]


class RedisStatsStore(StatsStore):
    """Hash of counters under ``stats_key``; JSON run entries pushed onto ``logs_key``."""

    backend = "redis"

    def __init__(self, client: Any, settings: StatsSettings | None = None, logger=None) -> None:
        super().__init__(settings, logger)
        self.client = client

    def record_run(self, summary: Any) -> bool:
        entry = run_entry(summary)
        stats_key = self.settings.stats_key
        logs_key = self.settings.logs_key
        started = time.perf_counter()
        try:
            self.client.hincrby(stats_key, "total_checks", 1)
            self.client.hincrby(stats_key, "total_tokens_sent", entry["tokens_sent"])
            self.client.hincrby(stats_key, "total_detected", int(getattr(summary, "extracted", 0)))
            self.client.hset(stats_key, "last_execution", entry["timestamp"])
            if self.settings.stats_ttl_seconds:
                self.client.expire(stats_key, self.settings.stats_ttl_seconds)
            self.client.lpush(logs_key, json.dumps(entry))
            self.client.ltrim(logs_key, 0, self.settings.max_runs - 1)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("stats_store_error", op="record_run", error=str(exc))
            return False
        self.logger.debug("stats_recorded", elapsed=round(time.perf_counter() - started, 4))
        return True

    def get_stats(self) -> dict[str, Any]:
        try:
            raw = self.client.hgetall(self.settings.stats_key) or {}
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("stats_store_error", op="get_stats", error=str(exc))
            raw = {}
        return self._normalise(raw)

    def recent_runs(self, limit: int = 10) -> list[dict[str, Any]]:
        try:
            raw_entries = self.client.lrange(self.settings.logs_key, 0, limit - 1)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("stats_store_error", op="recent_runs", error=str(exc))
            return []
        runs: list[dict[str, Any]] = []
        for raw in raw_entries:
            try:
                runs.append(json.loads(raw))
            except (TypeError, ValueError):
                continue
        return runs


__all__ = ["MemoryStatsStore", "RedisStatsStore", "StatsStore", "run_entry"]
