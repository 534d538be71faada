"""Shared fixtures: configuration builders, a fake clock and an in-memory Redis double."""

from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from launch_watch.config import (
    ConfigLocator,
    ConfigRepository,
    Environment,
    TelegramSettings,
    WatchConfig,
)

ENV_VARS = ("BOT_TOKEN", "CHAT_ID", "REDIS_URL", "REDIS_TOKEN", "CRON_SECRET", "SOURCE_URL", "LAUNCH_WATCH_ENV")


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("LAUNCH_WATCH_HOME", str(tmp_path))
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Just enough of the redis-py text-mode client for the stores."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.lists: dict[str, list[str]] = {}

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def setex(self, key: str, seconds: int, value: str) -> bool:
        self.values[key] = value
        self.ttls[key] = seconds
        return True

    def scan_iter(self, match: str = "*") -> Iterable[str]:
        return iter([key for key in list(self.values) if fnmatch.fnmatchcase(key, match)])

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def hincrby(self, name: str, key: str, amount: int = 1) -> int:
        bucket = self.hashes.setdefault(name, {})
        bucket[key] = str(int(bucket.get(key, "0")) + amount)
        return int(bucket[key])

    def hset(self, name: str, key: str, value: Any) -> int:
        self.hashes.setdefault(name, {})[key] = str(value)
        return 1

    def hgetall(self, name: str) -> dict[str, str]:
        return dict(self.hashes.get(name, {}))

    def expire(self, name: str, seconds: int) -> bool:
        self.ttls[name] = seconds
        return True

    def lpush(self, name: str, *values: str) -> int:
        bucket = self.lists.setdefault(name, [])
        for value in values:
            bucket.insert(0, value)
        return len(bucket)

    def ltrim(self, name: str, start: int, end: int) -> bool:
        bucket = self.lists.get(name, [])
        self.lists[name] = bucket[start : end + 1]
        return True

    def lrange(self, name: str, start: int, end: int) -> list[str]:
        return list(self.lists.get(name, [])[start : end + 1])


class BrokenRedis:
    """Every command fails as if the server were unreachable."""

    def __getattr__(self, name: str) -> Callable[..., Any]:
        def _fail(*_args: Any, **_kwargs: Any) -> Any:
            raise ConnectionError(f"redis unavailable during {name}")

        return _fail


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def broken_redis() -> BrokenRedis:
    return BrokenRedis()


@pytest.fixture
def make_config() -> Callable[..., WatchConfig]:
    def _builder(
        *,
        environment: Environment = Environment.PRODUCTION,
        telegram: bool = True,
        **overrides: Any,
    ) -> WatchConfig:
        base: dict[str, Any] = {"environment": environment}
        if telegram:
            base["telegram"] = TelegramSettings(bot_token="123:abc", chat_id="-100200")
        base.update(overrides)
        return WatchConfig(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator(project_root=tmp_path))


@pytest.fixture
def sample_listing_html() -> str:
    return """
    <html>
      <head><title>cookin</title><script>var PUMP = "ignored";</script></head>
      <body>
        <div class="token-card">
          <span>ABC Alpha token</span>
          <span>AbCd12...</span>
          <span>PUMP</span>
          <a href="https://t.me/abc_community">tg</a>
          <a href="/local/page">local</a>
        </div>
        <div class="token-card">
          <span>XYZ Xeno coin NEW</span>
          <span>Qw12Er...</span>
          <a href="https://x.com/xyz">x</a>
        </div>
        <p>welcome to the site</p>
      </body>
    </html>
    """
