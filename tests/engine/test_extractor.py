from __future__ import annotations

import re

import pytest

from launch_watch.config import ExtractionSettings
from launch_watch.engine.extractor import (
    RecordExtractor,
    contains_token_info,
    format_name,
    is_token_line,
    score_confidence,
)
from launch_watch.engine.record import Record, TokenStatus


def test_pump_line_yields_pumping_record() -> None:
    records = RecordExtractor().extract("FPM Funny Pants-Man FPM_PUMP DUMP")

    assert len(records) == 1
    record = records[0]
    assert record.symbol == "FPM"
    assert record.status is TokenStatus.PUMPING
    assert record.confidence >= 50
    assert record.address is None
    assert record.identity_key == "FPM:none"
    assert record.source == "text_parsing"


def test_name_falls_back_to_following_word() -> None:
    records = RecordExtractor().extract("FPM Funny Pants-Man FPM_PUMP DUMP")

    assert records[0].name == "Funny"


def test_name_uses_preceding_word() -> None:
    records = RecordExtractor().extract("launch doge MOON NEW token today")

    assert records[0].symbol == "MOON"
    assert records[0].name == "Doge"


def test_no_matches_yields_empty_list() -> None:
    html = "<html><body><p>hello world, nothing to see here</p></body></html>"

    assert RecordExtractor().extract(html) == []


@pytest.mark.parametrize("content", ["", "   ", None, 42, "<<<>>>\x00<div", "<div><tr></span>"])
def test_malformed_input_never_raises(content) -> None:
    records = RecordExtractor().extract(content)

    assert isinstance(records, list)


def test_structural_records_merge_anchor_links(sample_listing_html: str) -> None:
    records = RecordExtractor().extract(sample_listing_html, base_url=None)
    by_key = {record.identity_key: record for record in records}

    assert {"ABC:AbCd12...", "XYZ:Qw12Er..."} <= set(by_key)
    abc = by_key["ABC:AbCd12..."]
    assert abc.status is TokenStatus.PUMPING
    assert abc.links == ("https://t.me/abc_community",)
    assert abc.confidence == 100
    assert records[0].confidence == 100


def test_identity_key_appears_once_across_strategies(sample_listing_html: str) -> None:
    records = RecordExtractor().extract(sample_listing_html)
    keys = [record.identity_key for record in records]

    assert len(keys) == len(set(keys))


def test_records_satisfy_symbol_and_confidence_bounds(sample_listing_html: str) -> None:
    samples = [
        sample_listing_html,
        "FPM Funny Pants-Man FPM_PUMP DUMP",
        "<table><tr><td>SOL SOLANA token F45yyX... PUMP</td></tr></table>",
        "<ul><li class='item'>BOBO bo bo memecoin GET31x… https://thelocal.ink/ NEW</li></ul>",
    ]
    extractor = RecordExtractor()
    for content in samples:
        for record in extractor.extract(content):
            assert re.fullmatch(r"[A-Z]{2,6}", record.symbol)
            assert 30 <= record.confidence <= 100


def test_unicode_ellipsis_address_is_normalised() -> None:
    records = RecordExtractor().extract("<p>BOBO memecoin GET31x… PUMP now</p>")

    assert records[0].address == "GET31x..."


def test_links_are_capped_and_unique() -> None:
    line = "ABC token PUMP " + " ".join(f"https://a.example/{i} https://a.example/{i}" for i in range(5))

    record = RecordExtractor().extract(line)[0]

    assert record.links == ("https://a.example/0", "https://a.example/1", "https://a.example/2")


def test_merge_filters_dedups_ranks_and_caps() -> None:
    extractor = RecordExtractor(ExtractionSettings(max_results=2))

    def make(symbol: str, confidence: int, source: str) -> Record:
        return Record(symbol=symbol, name="X", status=TokenStatus.NEW, raw_excerpt="", source=source, confidence=confidence)

    merged = extractor.merge(
        [
            make("LOW", 20, "a"),
            make("AAA", 50, "first"),
            make("BBB", 90, "b"),
            make("AAA", 70, "second"),
            make("CCC", 60, "c"),
        ]
    )

    assert [(record.symbol, record.source) for record in merged] == [("BBB", "b"), ("CCC", "c")]


def test_merge_keeps_first_occurrence_of_duplicate_key() -> None:
    extractor = RecordExtractor()
    first = Record(symbol="AAA", name="X", status=TokenStatus.NEW, raw_excerpt="", source="one", confidence=40)
    second = Record(symbol="AAA", name="X", status=TokenStatus.NEW, raw_excerpt="", source="two", confidence=90)

    assert extractor.merge([first, second]) == [first]


def test_score_confidence_weights() -> None:
    assert score_confidence("ABC", "AbCd...", True, ["https://x"]) == 100
    assert score_confidence("ABC", None, False, []) == 30
    assert score_confidence("ABC", "AbCd...", False, []) == 70
    assert score_confidence(None, None, True, []) == 20


def test_line_and_container_predicates() -> None:
    assert is_token_line("XYZ launched on SOLANA")
    assert is_token_line("XY AbCd12... listed")
    assert not is_token_line("solana news for everyone")
    assert contains_token_info("something about a TOKEN launch")
    assert contains_token_info("ABC AbCd12... trading")
    assert not contains_token_info("short")


def test_format_name() -> None:
    assert format_name("pants-MAN", "FPM") == "Pants-man"
    assert format_name("a", "FPM") == "Unknown"
    assert format_name("FPM", "FPM") == "Unknown"
    assert format_name(None, "FPM") == "Unknown"
