"""Pydantic models used across launch-watch configuration flow."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MIN_MESSAGE_DELAY = 1.0
MIN_RATE_LIMIT_DELAY = 5.0


class Environment(str, Enum):
    """Deployment mode; development enables fallback records on fetch failure."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ScheduleType(str, Enum):
    """Scheduler modes for the periodic watcher."""

    CRON = "cron"
    INTERVAL = "interval"


class ScheduleConfig(BaseModel):
    """Configuration describing when the watcher should run."""

    type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    value: Any = Field(
        default=300,
        description="Cron expression or interval seconds/kwargs, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL:
            if isinstance(self.value, bool) or not isinstance(self.value, (int, float, dict)):
                raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
            if isinstance(self.value, (int, float)) and self.value <= 0:
                raise ValueError("Interval seconds must be positive")
        return self


class SourceSettings(BaseModel):
    """Where the listing page lives and how to request it."""

    url: str = "https://cookin.fun"
    timeout: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT
    retry_on_fail: int = 0
    extra_headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @field_validator("retry_on_fail")
    @classmethod
    def _non_negative_retry(cls, value: int) -> int:
        if value < 0:
            raise ValueError("retry_on_fail must be >= 0")
        return value


class ExtractionSettings(BaseModel):
    """Thresholds applied by the record extractor."""

    min_confidence: int = 30
    max_results: int = 15
    max_links: int = 3
    excerpt_length: int = 200

    @model_validator(mode="after")
    def _validate_bounds(self) -> "ExtractionSettings":
        if not 0 <= self.min_confidence <= 100:
            raise ValueError("min_confidence must be within [0, 100]")
        if self.max_results < 1:
            raise ValueError("max_results must be >= 1")
        if self.max_links < 0:
            raise ValueError("max_links must be >= 0")
        if self.excerpt_length < 1:
            raise ValueError("excerpt_length must be >= 1")
        return self


class DedupSettings(BaseModel):
    """Seen-set retention and in-process bounds."""

    retention_seconds: int = 86400
    key_prefix: str = "token:"
    memory_max_entries: int = 1000
    memory_trim_to: int = 500

    @model_validator(mode="after")
    def _validate_watermarks(self) -> "DedupSettings":
        if self.retention_seconds < 1:
            raise ValueError("retention_seconds must be >= 1")
        if self.memory_trim_to < 1:
            raise ValueError("memory_trim_to must be >= 1")
        if self.memory_trim_to > self.memory_max_entries:
            raise ValueError("memory_trim_to must be <= memory_max_entries")
        return self


class RedisSettings(BaseModel):
    """Remote KV backend; left unset the in-process stores are used."""

    url: str | None = None
    token: str | None = None
    socket_timeout: float = 5.0

    @property
    def enabled(self) -> bool:
        return bool(self.url)


class TelegramSettings(BaseModel):
    """Bot credentials and dispatch pacing."""

    bot_token: str | None = None
    chat_id: str | None = None
    api_base: str = "https://api.telegram.org"
    parse_mode: str = "Markdown"
    disable_preview: bool = True
    timeout: float = 10.0
    message_delay: float = 1.0
    rate_limit_delay: float = 5.0

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    @model_validator(mode="after")
    def _validate_delays(self) -> "TelegramSettings":
        if self.message_delay < MIN_MESSAGE_DELAY:
            raise ValueError(f"message_delay must be >= {MIN_MESSAGE_DELAY} seconds")
        if self.rate_limit_delay < MIN_RATE_LIMIT_DELAY:
            raise ValueError(f"rate_limit_delay must be >= {MIN_RATE_LIMIT_DELAY} seconds")
        if self.rate_limit_delay < self.message_delay:
            raise ValueError("rate_limit_delay must be >= message_delay")
        return self


class StatsSettings(BaseModel):
    """Keys and bounds for persisted run aggregates."""

    stats_key: str = "execution:stats"
    logs_key: str = "execution:logs"
    max_runs: int = 100
    stats_ttl_seconds: int | None = None


class ApiSettings(BaseModel):
    """HTTP trigger surface."""

    host: str = "127.0.0.1"
    port: int = 8000
    cron_secret: str | None = None


class WatchConfig(BaseModel):
    """Top-level configuration shared by every component."""

    environment: Environment = Environment.PRODUCTION
    source: SourceSettings = Field(default_factory=SourceSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    dedup: DedupSettings = Field(default_factory=DedupSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    stats: StatsSettings = Field(default_factory=StatsSettings)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    api: ApiSettings = Field(default_factory=ApiSettings)

    @property
    def is_development(self) -> bool:
        return self.environment is Environment.DEVELOPMENT


__all__ = [
    "ApiSettings",
    "DEFAULT_USER_AGENT",
    "DedupSettings",
    "Environment",
    "ExtractionSettings",
    "RedisSettings",
    "ScheduleConfig",
    "ScheduleType",
    "SourceSettings",
    "StatsSettings",
    "TelegramSettings",
    "WatchConfig",
]
