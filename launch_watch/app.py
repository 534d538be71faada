"""Typer CLI entrypoint for launch-watch."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, ScheduleConfig, ScheduleType
from .engine import FetchError, Record, format_summary
from .logging_conf import available_logs, configure_logging, default_log_dir, tail_log
from .notify import NotificationError, TelegramNotifier
from .orchestrator import RunState, RunSummary
from .runtime import Runtime, build_runtime
from .scheduler import APSchedulerAdapter

app = typer.Typer(
    help="launch-watch command line tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
seen_app = typer.Typer(name="seen", help="Seen-set maintenance", no_args_is_help=True, rich_markup_mode=None)
config_app = typer.Typer(name="config", help="Configuration file commands", no_args_is_help=True, rich_markup_mode=None)
log_app = typer.Typer(name="log", help="Log viewing commands", no_args_is_help=True, rich_markup_mode=None)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    verbose: bool = False


def build_state(verbose: bool = False) -> AppState:
    repository = ConfigRepository()
    configure_logging(verbose=verbose)
    return AppState(repository=repository, verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _runtime(ctx: typer.Context, dry_run: bool = False) -> Runtime:
    state = _get_state(ctx)
    try:
        return build_runtime(state.repository, verbose=state.verbose, dry_run=dry_run)
    except ValueError as exc:
        console.print(f"Invalid configuration: {exc}", style="red")
        raise typer.Exit(code=1) from exc


def _require_notifier(runtime: Runtime) -> None:
    if runtime.notifier is None:
        console.print("BOT_TOKEN or CHAT_ID not configured (use --dry-run to log messages instead).", style="red")
        raise typer.Exit(code=1)


def _format_schedule(schedule: ScheduleConfig) -> str:
    data = schedule.value
    if schedule.type is ScheduleType.CRON:
        return f"cron ({data})"
    if isinstance(data, (int, float)):
        seconds = int(data)
        if seconds % 60 == 0:
            minutes = seconds // 60
            return f"{minutes} minute{'s' if minutes != 1 else ''}"
        return f"{seconds} seconds"
    return f"interval ({data})"


def _render_records_table(records: Sequence[Record], title: str) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("Symbol", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Address", style="magenta")
    table.add_column("Status", style="yellow")
    table.add_column("Conf.", justify="right", style="green")
    table.add_column("Source", style="dim", overflow="fold")
    for record in records:
        table.add_row(
            record.symbol,
            record.name,
            record.address or "-",
            record.status.label,
            str(record.confidence),
            record.source,
        )
    return table


def _render_summary_table(summary: RunSummary) -> Table:
    table = Table(title="Run summary", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("State", summary.state.value)
    table.add_row("Extracted", str(summary.extracted))
    table.add_row("New", str(summary.new))
    table.add_row("Sent", str(summary.sent))
    if summary.fallback:
        table.add_row("Fallback", "development records")
    if summary.error:
        table.add_row("Error", summary.error)
    return table


def _render_runs_table(runs: Iterable[dict]) -> Table:
    table = Table(title="Recent runs", box=box.SIMPLE_HEAD)
    table.add_column("Timestamp", style="cyan")
    table.add_column("Sent", justify="right", style="green")
    table.add_column("Success")
    for run in runs:
        table.add_row(str(run.get("timestamp", "-")), str(run.get("tokens_sent", 0)), str(run.get("success", "-")))
    return table


app.add_typer(seen_app, name="seen", help="Inspect or clear the seen-set")
app.add_typer(config_app, name="config", help="Show or initialise configuration")
app.add_typer(log_app, name="log", help="List or tail log files")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging", is_flag=True)
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Fetch, extract, dedup and notify once.")
def run_once(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Log messages instead of sending; do not mark records as seen."),
) -> None:
    runtime = _runtime(ctx, dry_run=dry_run)
    try:
        _require_notifier(runtime)
        summary = runtime.orchestrator.run(commit=not dry_run)
    finally:
        runtime.close()
    console.print(_render_summary_table(summary))
    if summary.dispatched:
        console.print(_render_records_table(summary.dispatched, "Dispatched"))
    if summary.state is RunState.FAILED:
        raise typer.Exit(code=1)


@app.command("check", help="Manual check: send one digest of what is on the page now.")
def check(ctx: typer.Context) -> None:
    runtime = _runtime(ctx)
    try:
        _require_notifier(runtime)
        result = runtime.orchestrator.check()
    except (FetchError, NotificationError) as exc:
        console.print(f"Manual check failed: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    finally:
        runtime.close()
    console.print(f"Found {result.tokens_found} tokens; digest sent: {result.digest_sent}", style="cyan")
    if result.records:
        console.print(_render_records_table(result.sample(), "Sample"))


@app.command("extract", help="Run the extractor on a local file or URL without notifying.")
def extract(
    ctx: typer.Context,
    file: Optional[Path] = typer.Argument(None, help="HTML or text file to parse."),
    url: Optional[str] = typer.Option(None, "--url", help="Fetch this URL instead of the configured source."),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON."),
) -> None:
    runtime = _runtime(ctx, dry_run=True)
    try:
        if file is not None:
            if not file.exists():
                console.print(f"File not found: {file}", style="red")
                raise typer.Exit(code=1)
            content = file.read_text(encoding="utf-8", errors="ignore")
            base_url = None
        else:
            try:
                response = runtime.fetcher.fetch(url or runtime.config.source.url)
            except FetchError as exc:
                console.print(f"Fetch failed: {exc}", style="red")
                raise typer.Exit(code=1) from exc
            content, base_url = response.text, response.url
        records = runtime.extractor.extract(content, base_url=base_url)
    finally:
        runtime.close()
    if as_json:
        console.print_json(json.dumps([record.to_dict() for record in records], ensure_ascii=False))
        return
    if not records:
        console.print("No records extracted.", style="dim")
        return
    console.print(_render_records_table(records, f"Extracted records · {len(records)}"))


@app.command("status", help="Show aggregate counters, recent runs and storage backend.")
def status(ctx: typer.Context) -> None:
    runtime = _runtime(ctx, dry_run=True)
    try:
        stats = runtime.stats.get_stats()
        runs = runtime.stats.recent_runs(10)
        storage = runtime.seen_store.info()
    finally:
        runtime.close()
    table = Table(title="launch-watch status", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Environment", runtime.config.environment.value)
    table.add_row("Source", runtime.config.source.url)
    table.add_row("Telegram", "configured" if runtime.config.telegram.configured else "not configured")
    table.add_row("Storage", json.dumps(storage))
    table.add_row("Total checks", str(stats["total_checks"]))
    table.add_row("Tokens sent", str(stats["total_tokens_sent"]))
    table.add_row("Last execution", str(stats["last_execution"] or "Never"))
    console.print(table)
    if runs:
        console.print(_render_runs_table(runs))


@app.command("report", help="Render the summary report, optionally sending it.")
def report(
    ctx: typer.Context,
    send: bool = typer.Option(False, "--send", help="Send the report to the configured chat."),
) -> None:
    runtime = _runtime(ctx)
    try:
        recent = [entry["key"] for entry in runtime.seen_store.entries(limit=5)]
        message = format_summary(
            runtime.stats.get_stats(),
            recent,
            interval_label=_format_schedule(runtime.config.schedule),
        )
        console.print(message)
        if send:
            _require_notifier(runtime)
            try:
                runtime.notifier.send(message)
            except NotificationError as exc:
                console.print(f"Report not sent: {exc}", style="red")
                raise typer.Exit(code=1) from exc
            console.print("Report sent.", style="green")
    finally:
        runtime.close()


@app.command("bot-check", help="Verify the bot token with getMe.")
def bot_check(ctx: typer.Context) -> None:
    config = _get_state(ctx).repository.load_config()
    if not config.telegram.configured:
        console.print("BOT_TOKEN or CHAT_ID not configured.", style="red")
        raise typer.Exit(code=1)
    notifier = TelegramNotifier(config.telegram)
    try:
        username = notifier.test_connection()
    except NotificationError as exc:
        console.print(f"Bot connection failed: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    finally:
        notifier.close()
    console.print(f"Bot connected: @{username}", style="green")


@app.command("watch", help="Run on the configured schedule until interrupted.")
def watch(ctx: typer.Context) -> None:
    runtime = _runtime(ctx)
    _require_notifier(runtime)
    scheduler = APSchedulerAdapter()
    scheduler.schedule_watch(runtime.config.schedule, runtime.orchestrator.run)
    scheduler.start()
    console.print(f"Watching {runtime.config.source.url} every {_format_schedule(runtime.config.schedule)}. Ctrl+C to stop.", style="cyan")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping watcher.", style="yellow")
    finally:
        scheduler.shutdown()
        runtime.close()


@app.command("serve", help="Serve /api/cron, /api/check and /api/status.")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)."),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default from config)."),
) -> None:
    import uvicorn

    from .api import create_app

    state = _get_state(ctx)
    config = state.repository.load_config()
    application = create_app(lambda: build_runtime(state.repository, verbose=state.verbose))
    uvicorn.run(application, host=host or config.api.host, port=port or config.api.port)


@seen_app.command("count", help="Number of live seen-set entries.")
def seen_count(ctx: typer.Context) -> None:
    runtime = _runtime(ctx, dry_run=True)
    try:
        count = runtime.seen_store.count_members()
    finally:
        runtime.close()
    console.print(f"{count} entries ({runtime.seen_store.backend})")


@seen_app.command("list", help="Show live seen-set entries.")
def seen_list(ctx: typer.Context, limit: int = typer.Option(20, "--limit", help="Maximum entries.")) -> None:
    runtime = _runtime(ctx, dry_run=True)
    try:
        entries = runtime.seen_store.entries(limit=limit)
    finally:
        runtime.close()
    if not entries:
        console.print("Seen-set is empty.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("Key", style="cyan")
    table.add_column("Sent at")
    table.add_column("Expires at")
    for entry in entries:
        table.add_row(entry["key"], str(entry.get("sent_at", "-")), str(entry.get("expires_at", "-")))
    console.print(table)


@seen_app.command("clear", help="Remove every seen-set entry.")
def seen_clear(ctx: typer.Context, yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation.")) -> None:
    if not yes and not typer.confirm("Clear the seen-set? Records will be re-sent."):
        console.print("Cancelled.", style="yellow")
        raise typer.Exit(code=0)
    runtime = _runtime(ctx, dry_run=True)
    try:
        removed = runtime.seen_store.clear()
    finally:
        runtime.close()
    console.print(f"Removed {removed} entries.", style="green")


@config_app.command("show", help="Print the effective configuration (secrets masked).")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        config = state.repository.load_config()
    except ValueError as exc:
        console.print(f"Invalid configuration: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    payload = config.model_dump(mode="json")
    for section, key in (("telegram", "bot_token"), ("redis", "token"), ("api", "cron_secret")):
        if payload[section].get(key):
            payload[section][key] = "***"
    console.print(f"# {state.repository.locator.config_path()}", style="dim")
    console.print(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False))


@config_app.command("init", help="Write a default configuration file.")
def config_init(ctx: typer.Context, force: bool = typer.Option(False, "--force", help="Overwrite an existing file.")) -> None:
    state = _get_state(ctx)
    path = state.repository.locator.config_path()
    if path.exists() and not force:
        console.print(f"{path} already exists (use --force to overwrite).", style="yellow")
        raise typer.Exit(code=1)
    written = state.repository.reset()
    console.print(f"Wrote {written}", style="green")


@log_app.command("list", help="List available log files.")
def log_list() -> None:
    logs = list(available_logs())
    if not logs:
        console.print("No log files yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    table.add_column("Size", justify="right")
    for path in logs:
        table.add_row(path.name, str(path.stat().st_size))
    console.print(table)


@log_app.command("show", help="Show the last lines of a log file.")
def log_show(
    name: str = typer.Argument("watch", help="Log name: watch or error."),
    lines: int = typer.Option(100, "--lines", "-n", help="Number of lines."),
) -> None:
    filename = name if name.endswith(".log") else f"{name}.log"
    tail = tail_log(default_log_dir() / filename, lines)
    if not tail:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{filename} · last {len(tail)} lines", style="cyan")
    console.print("".join(tail), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
