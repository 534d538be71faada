"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, apply_env_overrides
from .models import (
    ApiSettings,
    DedupSettings,
    Environment,
    ExtractionSettings,
    RedisSettings,
    ScheduleConfig,
    ScheduleType,
    SourceSettings,
    StatsSettings,
    TelegramSettings,
    WatchConfig,
)

__all__ = [
    "ApiSettings",
    "ConfigLocator",
    "ConfigRepository",
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
    "apply_env_overrides",
]
