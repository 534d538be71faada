"""Component wiring shared by the CLI, the scheduler and the HTTP server."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import structlog

from .config import ConfigRepository, WatchConfig
from .engine import DedupFilter, Fetcher, RecordExtractor
from .infra import (
    MemorySeenStore,
    MemoryStatsStore,
    RedisSeenStore,
    RedisStatsStore,
    SeenSetStore,
    StatsStore,
    build_redis_client,
)
from .logging_conf import configure_logging
from .notify import LogNotifier, NotConfiguredError, Notifier, TelegramNotifier
from .orchestrator import Orchestrator


@dataclass(slots=True)
class Runtime:
    """Long-lived components for one process."""

    config: WatchConfig
    fetcher: Fetcher
    extractor: RecordExtractor
    seen_store: SeenSetStore
    stats: StatsStore
    notifier: Notifier | None
    logger: Any
    dry_run: bool = False
    _orchestrator: Orchestrator | None = field(default=None, repr=False)

    @property
    def orchestrator(self) -> Orchestrator:
        if self.notifier is None:
            raise NotConfiguredError()
        if self._orchestrator is None:
            self._orchestrator = Orchestrator(
                config=self.config,
                fetcher=self.fetcher,
                extractor=self.extractor,
                dedup=DedupFilter(self.seen_store, self.config.dedup.retention_seconds),
                notifier=self.notifier,
                stats=self.stats,
                logger=self.logger.bind(component="orchestrator"),
            )
        return self._orchestrator

    def close(self) -> None:
        self.fetcher.close()
        if self.notifier is not None:
            self.notifier.close()


def build_stores(config: WatchConfig, logger=None) -> tuple[SeenSetStore, StatsStore]:
    logger = logger or structlog.get_logger("launch_watch.runtime")
    client = build_redis_client(config.redis)
    if client is None:
        logger.info("storage_backend", backend="memory")
        return (
            MemorySeenStore(
                max_entries=config.dedup.memory_max_entries,
                trim_to=config.dedup.memory_trim_to,
            ),
            MemoryStatsStore(config.stats),
        )
    logger.info("storage_backend", backend="redis")
    return (
        RedisSeenStore(client, key_prefix=config.dedup.key_prefix),
        RedisStatsStore(client, config.stats),
    )


def build_notifier(config: WatchConfig, dry_run: bool = False) -> Notifier | None:
    if dry_run:
        return LogNotifier()
    if not config.telegram.configured:
        return None
    return TelegramNotifier(config.telegram)


def build_runtime(
    repository: ConfigRepository | None = None,
    verbose: bool = False,
    dry_run: bool = False,
    environ: Mapping[str, str] | None = None,
    config: WatchConfig | None = None,
) -> Runtime:
    logger = configure_logging(verbose).bind(component="runtime")
    if config is None:
        config = (repository or ConfigRepository()).load_config(environ)
    seen_store, stats = build_stores(config, logger)
    return Runtime(
        config=config,
        fetcher=Fetcher(config.source),
        extractor=RecordExtractor(config.extraction),
        seen_store=seen_store,
        stats=stats,
        notifier=build_notifier(config, dry_run),
        logger=logger,
        dry_run=dry_run,
    )


__all__ = ["Runtime", "build_notifier", "build_runtime", "build_stores"]
