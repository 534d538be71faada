"""Infra layer: seen-set and stats persistence."""

from .redis_client import build_redis_client
from .seen_store import MemorySeenStore, RedisSeenStore, SeenSetStore
from .stats import MemoryStatsStore, RedisStatsStore, StatsStore

__all__ = [
    "MemorySeenStore",
    "MemoryStatsStore",
    "RedisSeenStore",
    "RedisStatsStore",
    "SeenSetStore",
    "StatsStore",
    "build_redis_client",
]
