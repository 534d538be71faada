"""Run orchestrator wiring fetch, extraction, dedup, dispatch and stats together."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

import structlog

from .config import WatchConfig
from .engine import (
    DedupFilter,
    Fetcher,
    Record,
    RecordExtractor,
    development_records,
    format_check_digest,
    format_record,
)
from .infra import StatsStore
from .notify import NotificationError, Notifier

CHECK_SAMPLE_SIZE = 5


class RunState(str, Enum):
    FETCHING = "FETCHING"
    EXTRACTING = "EXTRACTING"
    FILTERING = "FILTERING"
    NOTIFYING = "NOTIFYING"
    PERSISTING = "PERSISTING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass(slots=True)
class RunSummary:
    """Outcome of one run; ``dispatched`` holds the records actually sent."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: RunState = RunState.FETCHING
    extracted: int = 0
    new: int = 0
    sent: int = 0
    error: str | None = None
    fallback: bool = False
    finished_at: datetime | None = None
    dispatched: list[Record] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state is RunState.DONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "extracted": self.extracted,
            "new": self.new,
            "sent": self.sent,
            "error": self.error,
            "fallback": self.fallback,
            "dispatched": [record.to_dict() for record in self.dispatched],
        }


@dataclass(slots=True)
class CheckResult:
    """Outcome of a manual check: what was found, and whether the digest went out."""

    records: list[Record]
    digest_sent: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def tokens_found(self) -> int:
        return len(self.records)

    def sample(self, size: int = CHECK_SAMPLE_SIZE) -> list[Record]:
        return self.records[:size]


class Orchestrator:
    """Drive a run through its stages; nothing raised by a collaborator escapes ``run``."""

    def __init__(
        self,
        config: WatchConfig,
        fetcher: Fetcher,
        extractor: RecordExtractor,
        dedup: DedupFilter,
        notifier: Notifier,
        stats: StatsStore,
        sleep: Callable[[float], None] = time.sleep,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.extractor = extractor
        self.dedup = dedup
        self.notifier = notifier
        self.stats = stats
        self.sleep = sleep
        self.logger = logger or structlog.get_logger("launch_watch.orchestrator").bind(component="orchestrator")

    # ------------------------------------------------------------------
    def run(self, commit: bool = True) -> RunSummary:
        """Execute one full run.

        ``commit=False`` dispatches without marking records as seen (dry runs).
        """

        summary = RunSummary()
        self.logger.info("run_started", source=self.config.source.url)

        records = self._collect(summary)
        if summary.state is RunState.FAILED:
            summary.finished_at = datetime.now(timezone.utc)
            self.logger.error("run_failed", error=summary.error)
            return summary
        summary.extracted = len(records)

        summary.state = RunState.FILTERING
        fresh = self.dedup.partition_new(records)
        summary.new = len(fresh)

        summary.state = RunState.NOTIFYING
        self._dispatch(fresh, summary, commit)

        summary.state = RunState.PERSISTING
        try:
            if not self.stats.record_run(_CompletedRun(summary)):
                self.logger.warning("stats_not_persisted")
        except Exception as exc:  # noqa: BLE001
            self.logger.error("stats_persist_failed", error=str(exc))

        summary.state = RunState.DONE
        summary.finished_at = datetime.now(timezone.utc)
        self.logger.info(
            "run_completed",
            extracted=summary.extracted,
            new=summary.new,
            sent=summary.sent,
            fallback=summary.fallback,
        )
        return summary

    def check(self) -> CheckResult:
        """Fetch and extract, then send one digest; the seen-set and stats are untouched.

        Unlike ``run`` a production fetch failure propagates as ``FetchError``.
        """

        try:
            response = self.fetcher.fetch(self.config.source.url)
            records = self.extractor.extract(response.text, base_url=response.url)
        except Exception as exc:  # noqa: BLE001
            if not self.config.is_development:
                raise
            self.logger.warning("check_using_fallback", error=str(exc))
            records = development_records()

        digest_sent = False
        if records:
            self.notifier.send(format_check_digest(records))
            digest_sent = True
        self.logger.info("check_completed", tokens_found=len(records), digest_sent=digest_sent)
        return CheckResult(records=records, digest_sent=digest_sent)

    # ------------------------------------------------------------------
    def _collect(self, summary: RunSummary) -> list[Record]:
        summary.state = RunState.FETCHING
        try:
            response = self.fetcher.fetch(self.config.source.url)
        except Exception as exc:  # noqa: BLE001
            if self.config.is_development:
                self.logger.warning("fetch_failed_using_fallback", error=str(exc))
                summary.fallback = True
                return development_records()
            summary.state = RunState.FAILED
            summary.error = str(exc) or exc.__class__.__name__
            return []

        summary.state = RunState.EXTRACTING
        try:
            return self.extractor.extract(response.text, base_url=response.url)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("extract_failed", error=str(exc))
            return []

    def _dispatch(self, records: list[Record], summary: RunSummary, commit: bool) -> None:
        telegram = self.config.telegram
        delay = telegram.message_delay
        for index, record in enumerate(records):
            if index:
                self.sleep(delay)
            delay = telegram.message_delay
            try:
                self.notifier.send(format_record(record))
            except NotificationError as exc:
                if exc.rate_limited:
                    delay = telegram.rate_limit_delay
                self.logger.warning(
                    "record_dispatch_failed",
                    symbol=record.symbol,
                    key=record.identity_key,
                    rate_limited=exc.rate_limited,
                    error=exc.description,
                )
                continue
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("record_dispatch_failed", symbol=record.symbol, error=str(exc))
                continue
            summary.sent += 1
            summary.dispatched.append(record)
            if commit:
                self.dedup.commit(record)
            self.logger.info("record_dispatched", symbol=record.symbol, key=record.identity_key)


@dataclass(slots=True)
class _CompletedRun:
    """Stats view of a summary; persistence happens before the state reaches DONE."""

    summary: RunSummary

    @property
    def started_at(self) -> datetime:
        return self.summary.started_at

    @property
    def sent(self) -> int:
        return self.summary.sent

    @property
    def extracted(self) -> int:
        return self.summary.extracted

    @property
    def success(self) -> bool:
        return self.summary.state is not RunState.FAILED


__all__ = ["CHECK_SAMPLE_SIZE", "CheckResult", "Orchestrator", "RunState", "RunSummary"]
