"""Render records and run aggregates into Telegram Markdown messages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from .record import Record

FOOTER = "\U0001f916 *Auto-detected by launch-watch*"
MARKDOWN_SPECIALS = ("_", "*", "[", "`")


def escape_markdown(text: str) -> str:
    """Backslash-escape characters that open entities in legacy Telegram Markdown."""

    for char in MARKDOWN_SPECIALS:
        text = text.replace(char, "\\" + char)
    return text


def _when(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_record(record: Record, now: datetime | None = None) -> str:
    """Fixed notification template for a single record."""

    status = getattr(record, "status", None)
    glyph = status.glyph if status is not None else ""
    label = status.value if status is not None else "UNKNOWN"
    detected = _when(getattr(record, "detected_at", None))
    sent = _when(now)

    lines = [
        f"{glyph} *{label}* {glyph}".strip(),
        "",
        f"*Token:* {escape_markdown(record.name or 'Unknown')}",
        f"*Symbol:* `{record.symbol}`",
    ]
    if record.address:
        lines.append(f"*Address:* `{record.address}`")
    lines.append(f"*Confidence:* {record.confidence}%")
    lines.extend(["", "*Info:*", escape_markdown(record.raw_excerpt or "-")])
    links = list(record.links or ())
    if links:
        lines.extend(["", "*Links:*"])
        lines.extend(f"{index}. {escape_markdown(link)}" for index, link in enumerate(links, start=1))
    lines.extend(
        [
            "",
            f"⏰ *Detected:* {detected.strftime('%H:%M:%S')} UTC",
            f"\U0001f50d *Source:* {escape_markdown(record.source or '-')}",
            f"\U0001f4c5 *Date:* {sent.strftime('%Y-%m-%d')}",
            "",
            FOOTER,
        ]
    )
    return "\n".join(lines)


def format_check_digest(records: Iterable[Record]) -> str:
    """One-message digest used by the manual check."""

    items = list(records)
    lines = ["\U0001f504 *Manual Check Result*", "", f"Found {len(items)} tokens:"]
    lines.extend(f"• {record.symbol}: {record.status.label}" for record in items)
    return "\n".join(lines)


def format_summary(
    stats: Mapping[str, Any],
    recent: Iterable[str] = (),
    *,
    interval_label: str = "5 minutes",
    now: datetime | None = None,
) -> str:
    """Daily report built from persisted aggregates.

    ``recent`` holds short labels (identity keys or "SYMBOL: STATUS" lines).
    """

    total_checks = int(stats.get("total_checks") or 0)
    total_sent = int(stats.get("total_tokens_sent") or 0)
    detected = int(stats.get("total_detected") or total_sent)
    success_rate = round(100 * total_sent / detected) if detected else 0
    recent_lines = [f"• {item}" for item in recent]
    lines = [
        "\U0001f4ca *Daily Report*",
        "",
        "*Statistics:*",
        f"• Total checks: {total_checks}",
        f"• Total tokens detected: {detected}",
        f"• New tokens sent: {total_sent}",
        f"• Success rate: {success_rate}%",
        f"• Last execution: {stats.get('last_execution') or 'Never'}",
    ]
    if recent_lines:
        lines.extend(["", "*Recent Activity:*", *recent_lines])
    lines.extend(
        [
            "",
            f"⏰ *Report Time:* {_when(now).strftime('%H:%M:%S')} UTC",
            f"\U0001f504 *Next check:* {interval_label}",
            "",
            FOOTER,
        ]
    )
    return "\n".join(lines)


__all__ = ["escape_markdown", "format_check_digest", "format_record", "format_summary"]
