"""Deduplication of extracted records against the seen-set."""

from __future__ import annotations

from typing import Iterable

import structlog

from ..infra.seen_store import SeenSetStore
from .record import Record

DEFAULT_RETENTION_SECONDS = 86400


class DedupFilter:
    """Split records into unseen ones and mark dispatched ones as seen.

    Within a run this is the only writer to the store; ``commit`` is called once per
    record, after its notification went out.
    """

    def __init__(
        self,
        store: SeenSetStore,
        retention_seconds: int = DEFAULT_RETENTION_SECONDS,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.store = store
        self.retention_seconds = retention_seconds
        self.logger = logger or structlog.get_logger("launch_watch.dedup")

    def partition_new(self, records: Iterable[Record]) -> list[Record]:
        fresh: list[Record] = []
        skipped = 0
        for record in records:
            if self.store.is_member(record.identity_key):
                skipped += 1
                continue
            fresh.append(record)
        self.logger.debug("dedup_partitioned", new=len(fresh), seen=skipped)
        return fresh

    def commit(self, record: Record) -> bool:
        stored = self.store.mark_seen(record.identity_key, self.retention_seconds)
        if not stored:
            self.logger.warning("dedup_commit_failed", key=record.identity_key)
        return stored


__all__ = ["DEFAULT_RETENTION_SECONDS", "DedupFilter"]
