from __future__ import annotations

from datetime import datetime, timezone

from launch_watch.engine.formatter import escape_markdown, format_check_digest, format_record, format_summary
from launch_watch.engine.record import Record, TokenStatus

DETECTED = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)


def _record(**overrides) -> Record:
    base = dict(
        symbol="FPM",
        name="Funny",
        status=TokenStatus.PUMPING,
        raw_excerpt="FPM Funny Pants-Man FPM_PUMP DUMP",
        source="text_parsing",
        confidence=90,
        address="F45yyX...",
        links=("https://t.me/a", "https://t.me/b"),
        detected_at=DETECTED,
    )
    base.update(overrides)
    return Record(**base)


def test_format_record_contains_every_field() -> None:
    message = format_record(_record(), now=DETECTED)

    assert message.startswith("\U0001f680 *PUMPING* \U0001f680")
    assert "*Token:* Funny" in message
    assert "*Symbol:* `FPM`" in message
    assert "*Address:* `F45yyX...`" in message
    assert "*Confidence:* 90%" in message
    assert "1. https://t.me/a\n2. https://t.me/b" in message
    assert "*Detected:* 12:30:45 UTC" in message
    assert "*Source:* text\\_parsing" in message
    assert "*Date:* 2024-05-01" in message


def test_page_text_is_escaped_for_markdown() -> None:
    message = format_record(
        _record(name="Pants_Man", links=("https://t.me/fpm_chat",), source="text_parsing"),
        now=DETECTED,
    )

    assert "*Token:* Pants\\_Man" in message
    assert "FPM Funny Pants-Man FPM\\_PUMP DUMP" in message
    assert "1. https://t.me/fpm\\_chat" in message
    assert "*Symbol:* `FPM`" in message


def test_escape_markdown() -> None:
    assert escape_markdown("a_b *c* [d] `e`") == "a\\_b \\*c\\* \\[d] \\`e\\`"
    assert escape_markdown("plain") == "plain"


def test_format_record_omits_missing_optionals() -> None:
    message = format_record(_record(address=None, links=(), status=TokenStatus.NEW), now=DETECTED)

    assert "*Address:*" not in message
    assert "*Links:*" not in message
    assert message.startswith("\U0001f195 *NEW*")


def test_check_digest_lists_symbols() -> None:
    digest = format_check_digest([_record(), _record(symbol="GOON", status=TokenStatus.NEW)])

    assert digest.splitlines() == [
        "\U0001f504 *Manual Check Result*",
        "",
        "Found 2 tokens:",
        "• FPM: \U0001f680 PUMPING",
        "• GOON: \U0001f195 NEW",
    ]


def test_summary_reports_rates_and_recent_activity() -> None:
    stats = {"total_checks": 12, "total_tokens_sent": 3, "total_detected": 12, "last_execution": "2024-05-01T12:00:00+00:00"}

    message = format_summary(stats, ["FPM:F45yyX..."], interval_label="5 minutes", now=DETECTED)

    assert "• Total checks: 12" in message
    assert "• New tokens sent: 3" in message
    assert "• Success rate: 25%" in message
    assert "• FPM:F45yyX..." in message
    assert "*Next check:* 5 minutes" in message


def test_summary_with_empty_stats() -> None:
    message = format_summary({})

    assert "• Success rate: 0%" in message
    assert "• Last execution: Never" in message
    assert "*Recent Activity:*" not in message
