"""Configuration loading helpers for launch-watch."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from .models import Environment, WatchConfig

CONFIG_FILENAME = "watch_config.yaml"
HOME_ENV_VAR = "LAUNCH_WATCH_HOME"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV_VAR)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


def apply_env_overrides(config: WatchConfig, environ: Mapping[str, str] | None = None) -> WatchConfig:
    """Return a copy of ``config`` with credentials and mode taken from the environment.

    Secrets are never written back to the YAML file; they only live in the returned copy.
    """

    env = os.environ if environ is None else environ
    telegram = config.telegram.model_copy(
        update={
            key: value
            for key, value in (
                ("bot_token", env.get("BOT_TOKEN")),
                ("chat_id", env.get("CHAT_ID")),
            )
            if value
        }
    )
    redis = config.redis.model_copy(
        update={
            key: value
            for key, value in (("url", env.get("REDIS_URL")), ("token", env.get("REDIS_TOKEN")))
            if value
        }
    )
    api = config.api
    if env.get("CRON_SECRET"):
        api = api.model_copy(update={"cron_secret": env["CRON_SECRET"]})
    source = config.source
    if env.get("SOURCE_URL"):
        source = source.model_copy(update={"url": env["SOURCE_URL"]})
    environment = config.environment
    raw_env = (env.get("LAUNCH_WATCH_ENV") or "").strip().lower()
    if raw_env:
        try:
            environment = Environment(raw_env)
        except ValueError as exc:
            raise ValueError(f"LAUNCH_WATCH_ENV must be one of development/production, got {raw_env!r}") from exc
    return config.model_copy(
        update={
            "telegram": telegram,
            "redis": redis,
            "api": api,
            "source": source,
            "environment": environment,
        }
    )


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: WatchConfig | None = None

    def load_file_config(self) -> WatchConfig:
        """Return the on-disk configuration, creating the file with defaults if absent."""

        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            config = WatchConfig.model_validate(_read_file(path))
        else:
            config = WatchConfig()
            self.save_config(config)
        self._cache = config
        return config

    def load_config(self, environ: Mapping[str, str] | None = None) -> WatchConfig:
        return apply_env_overrides(self.load_file_config(), environ)

    def save_config(self, config: WatchConfig) -> Path:
        path = self.locator.config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._cache = config
        return path

    def reset(self) -> Path:
        """Overwrite the on-disk configuration with defaults."""

        return self.save_config(WatchConfig())


__all__ = ["CONFIG_FILENAME", "ConfigLocator", "ConfigRepository", "apply_env_overrides"]
