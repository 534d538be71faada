"""TTL seen-set stores: Redis-backed and in-process.

Both backends expose the same four operations and never raise to callers. A failing
read reports "not a member" and a failing write is logged and returns ``False``.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Callable

import structlog

Clock = Callable[[], float]


class SeenSetStore(ABC):
    """Keyed membership with per-entry expiry."""

    backend = "abstract"

    @abstractmethod
    def is_member(self, key: str) -> bool: ...

    @abstractmethod
    def mark_seen(self, key: str, retention_seconds: int) -> bool: ...

    @abstractmethod
    def count_members(self) -> int: ...

    @abstractmethod
    def clear(self) -> int: ...

    @abstractmethod
    def entries(self, limit: int = 100) -> list[dict[str, Any]]:
        """Return up to ``limit`` live entries as ``{key, sent_at, expires_at}``."""

    def info(self) -> dict[str, Any]:
        return {"backend": self.backend, "members": self.count_members()}


class MemorySeenStore(SeenSetStore):
    """Process-local seen-set guarded by a lock.

    Entries are evicted lazily on read and swept on insert; above ``max_entries`` the
    oldest entries are dropped until ``trim_to`` remain.
    """

    backend = "memory"

    def __init__(
        self,
        clock: Clock = time.time,
        max_entries: int = 1000,
        trim_to: int = 500,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.clock = clock
        self.max_entries = max_entries
        self.trim_to = trim_to
        self.logger = logger or structlog.get_logger("launch_watch.seen_store")
        self._entries: dict[str, tuple[float, float]] = {}
        self._lock = Lock()

    def is_member(self, key: str) -> bool:
        now = self.clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if now > entry[1]:
                del self._entries[key]
                return False
            return True

    def mark_seen(self, key: str, retention_seconds: int) -> bool:
        now = self.clock()
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (now, now + retention_seconds)
            self._sweep(now)
        return True

    def count_members(self) -> int:
        now = self.clock()
        with self._lock:
            return sum(1 for _, expires_at in self._entries.values() if now <= expires_at)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        return removed

    def entries(self, limit: int = 100) -> list[dict[str, Any]]:
        now = self.clock()
        with self._lock:
            live = [
                {"key": key, "sent_at": sent_at, "expires_at": expires_at}
                for key, (sent_at, expires_at) in self._entries.items()
                if now <= expires_at
            ]
        return live[:limit]

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]
        if len(self._entries) > self.max_entries:
            # dict order is insertion order, so the head holds the oldest marks
            overflow = len(self._entries) - self.trim_to
            for key in list(self._entries)[:overflow]:
                del self._entries[key]
            self.logger.info("seen_store_trimmed", removed=overflow, remaining=len(self._entries))


class RedisSeenStore(SeenSetStore):
    """Seen-set kept in Redis with server-side expiry (``SETEX``)."""

    backend = "redis"

    def __init__(
        self,
        client: Any,
        key_prefix: str = "token:",
        clock: Clock = time.time,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.key_prefix = key_prefix
        self.clock = clock
        self.logger = logger or structlog.get_logger("launch_watch.seen_store")

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def is_member(self, key: str) -> bool:
        try:
            raw = self.client.get(self._key(key))
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("seen_store_error", op="is_member", key=key, error=str(exc))
            return False
        if raw is None:
            return False
        try:
            expires_at = float(json.loads(raw)["expires_at"])
        except (ValueError, TypeError, KeyError):
            return True
        return self.clock() <= expires_at

    def mark_seen(self, key: str, retention_seconds: int) -> bool:
        now = self.clock()
        payload = json.dumps({"sent_at": now, "expires_at": now + retention_seconds})
        try:
            self.client.setex(self._key(key), retention_seconds, payload)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("seen_store_error", op="mark_seen", key=key, error=str(exc))
            return False
        return True

    def count_members(self) -> int:
        try:
            return sum(1 for _ in self.client.scan_iter(match=f"{self.key_prefix}*"))
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("seen_store_error", op="count_members", error=str(exc))
            return 0

    def clear(self) -> int:
        try:
            keys = list(self.client.scan_iter(match=f"{self.key_prefix}*"))
            if not keys:
                return 0
            return int(self.client.delete(*keys))
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("seen_store_error", op="clear", error=str(exc))
            return 0

    def entries(self, limit: int = 100) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        try:
            for redis_key in self.client.scan_iter(match=f"{self.key_prefix}*"):
                if len(out) >= limit:
                    break
                raw = self.client.get(redis_key)
                if raw is None:
                    continue
                data = json.loads(raw)
                out.append({"key": redis_key[len(self.key_prefix):], **data})
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("seen_store_error", op="entries", error=str(exc))
        return out

    def info(self) -> dict[str, Any]:
        try:
            connected = bool(self.client.ping())
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("seen_store_error", op="ping", error=str(exc))
            connected = False
        return {"backend": self.backend, "connected": connected, "members": self.count_members()}


__all__ = ["Clock", "MemorySeenStore", "RedisSeenStore", "SeenSetStore"]
