from __future__ import annotations

from pathlib import Path

import structlog
from typer.testing import CliRunner

from launch_watch.app import app
from launch_watch.config import TelegramSettings, WatchConfig
from launch_watch.engine import FetchResponse, RecordExtractor
from launch_watch.infra import MemorySeenStore, MemoryStatsStore
from launch_watch.notify import LogNotifier
from launch_watch.runtime import Runtime

runner = CliRunner()


class PageFetcher:
    def fetch(self, url=None, timeout=None) -> FetchResponse:
        return FetchResponse(
            url="https://listing.example/",
            status_code=200,
            text="<p>FPM Funny Pants-Man FPM_PUMP DUMP</p>",
            headers={},
        )

    def close(self) -> None:
        return None


def test_run_dry_run_uses_log_notifier(monkeypatch) -> None:
    captured: dict = {}
    config = WatchConfig(telegram=TelegramSettings(bot_token="1:a", chat_id="2"))
    notifier = LogNotifier()
    seen = MemorySeenStore()

    def fake_build_runtime(repository=None, verbose=False, dry_run=False, **_kwargs):
        captured["dry_run"] = dry_run
        return Runtime(
            config=config,
            fetcher=PageFetcher(),
            extractor=RecordExtractor(),
            seen_store=seen,
            stats=MemoryStatsStore(),
            notifier=notifier,
            logger=structlog.get_logger("launch_watch.test"),
            dry_run=dry_run,
        )

    monkeypatch.setattr("launch_watch.app.build_runtime", fake_build_runtime)

    result = runner.invoke(app, ["run", "--dry-run"])

    assert result.exit_code == 0, result.stdout
    assert captured["dry_run"] is True
    assert "DONE" in result.stdout
    assert len(notifier.messages) == 1
    assert "*Symbol:* `FPM`" in notifier.messages[0]
    assert seen.count_members() == 0


def test_run_without_credentials_exits_with_error() -> None:
    result = runner.invoke(app, ["run"])

    assert result.exit_code == 1
    assert "BOT_TOKEN or CHAT_ID not configured" in result.stdout


def test_extract_file_as_json(tmp_path: Path) -> None:
    page = tmp_path / "page.html"
    page.write_text("<p>FPM Funny Pants-Man FPM_PUMP DUMP</p>", encoding="utf-8")

    result = runner.invoke(app, ["extract", str(page), "--json"])

    assert result.exit_code == 0, result.stdout
    assert '"symbol": "FPM"' in result.stdout
    assert '"status": "PUMPING"' in result.stdout


def test_extract_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["extract", str(tmp_path / "missing.html")])

    assert result.exit_code == 1


def test_seen_count_and_clear() -> None:
    result = runner.invoke(app, ["seen", "count"])
    assert result.exit_code == 0
    assert "0 entries (memory)" in result.stdout

    result = runner.invoke(app, ["seen", "clear", "--yes"])
    assert result.exit_code == 0
    assert "Removed 0 entries." in result.stdout


def test_config_show_masks_secrets(monkeypatch) -> None:
    monkeypatch.setenv("BOT_TOKEN", "999:very-secret")

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    assert "***" in result.stdout
    assert "very-secret" not in result.stdout


def test_config_init_refuses_to_overwrite(isolated_home: Path) -> None:
    first = runner.invoke(app, ["config", "init"])
    second = runner.invoke(app, ["config", "init"])

    assert first.exit_code == 0
    assert (isolated_home / "data" / "watch_config.yaml").exists()
    assert second.exit_code == 1


def test_status_shows_counters() -> None:
    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert "Total checks" in result.stdout
    assert "Never" in result.stdout


def test_report_prints_summary() -> None:
    result = runner.invoke(app, ["report"])

    assert result.exit_code == 0
    assert "Daily Report" in result.stdout


def test_log_list_shows_files() -> None:
    result = runner.invoke(app, ["log", "list"])

    assert result.exit_code == 0
    assert "watch.log" in result.stdout
