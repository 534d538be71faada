"""Heuristic extraction of token launch records from listing pages.

The listing page has no stable markup, so three independent strategies run over the
same document and feed one deterministic merge:

1. line patterns over the page text,
2. structural containers (blocks, list items, table rows, token-ish classes),
3. a handful of targeted selectors.

Outputs are concatenated in that order, filtered by confidence, deduplicated by
identity key (first occurrence wins), ranked by confidence and capped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator
from urllib.parse import urljoin, urlparse

import structlog
from selectolax.parser import HTMLParser, Node

from ..config import ExtractionSettings
from .record import UNKNOWN_NAME, Record, TokenStatus

TOKEN_KEYWORDS = (
    "PUMP",
    "DUMP",
    "NEW",
    "TOKEN",
    "SOLANA",
    "MEMECOIN",
    "COIN",
    "RESUSED",
    "TORK",
    "NAME",
    "URL",
)
STATUS_SIGNALS = ("PUMP", "DUMP", "NEW")

SYMBOL_RE = re.compile(r"\b([A-Z]{2,6})\b")
ADDRESS_RE = re.compile(r"([A-Za-z0-9]{4,8})(?:\.\.\.|…)")
LINK_RE = re.compile(r"https?://[^\s]+")
CRITICAL_RE = re.compile(r"[A-Z]{2,6}_.*(?:PUMP|DUMP)")
WHITESPACE_RE = re.compile(r"\s+")

CONTAINER_TAGS = frozenset({"div", "section", "article", "tr", "li"})
CONTAINER_CLASS_HINTS = ("token", "card", "item", "pump", "new")
NOISE_TAGS = ["script", "style", "noscript", "template"]

MIN_LINE_LENGTH = 10
MIN_CONTAINER_TEXT = 20
PARENT_CONTEXT_CHARS = 300

SYMBOL_SCORE = 30
ADDRESS_SCORE = 40
STATUS_SCORE = 20
LINK_SCORE = 10


def score_confidence(symbol: str | None, address: str | None, has_signal: bool, links: Iterable[str]) -> int:
    """Additive confidence over fixed-weight signals, clamped to [0, 100]."""

    score = 0
    if symbol and 2 <= len(symbol) <= 6:
        score += SYMBOL_SCORE
    if address and ADDRESS_RE.fullmatch(address):
        score += ADDRESS_SCORE
    if has_signal:
        score += STATUS_SCORE
    if any(True for _ in links):
        score += LINK_SCORE
    return max(0, min(score, 100))


def is_token_line(line: str) -> bool:
    """True when the line carries a keyword (or address) and an uppercase symbol."""

    upper = line.upper()
    has_keyword = any(keyword in upper for keyword in TOKEN_KEYWORDS)
    has_address = ADDRESS_RE.search(line) is not None
    return (has_keyword or has_address) and SYMBOL_RE.search(line) is not None


def contains_token_info(text: str) -> bool:
    """Looser predicate used for structural containers."""

    if not text or len(text) < MIN_LINE_LENGTH:
        return False
    upper = text.upper()
    critical = (
        ("PUMP" in upper and "DUMP" in upper)
        or "NEW TOKENS" in upper
        or "RESUSED" in upper
        or CRITICAL_RE.search(upper) is not None
    )
    basic = "TOKEN" in upper or "SOLANA" in upper
    paired = SYMBOL_RE.search(text) is not None and ADDRESS_RE.search(text) is not None
    return critical or basic or paired


def format_name(candidate: str | None, symbol: str) -> str:
    if not candidate or len(candidate) < 2 or candidate == symbol or candidate == "undefined":
        return UNKNOWN_NAME
    return candidate[0].upper() + candidate[1:].lower()


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            out.append(value)
    return out


def _node_text(node: Node | None) -> str:
    if node is None:
        return ""
    return node.text(deep=True, separator=" ", strip=True) or ""


@dataclass(frozen=True, slots=True)
class TargetedQuery:
    """A structural query plus an optional predicate standing in for pseudo-selectors."""

    label: str
    css: str
    predicate: Callable[[Node, str], bool] | None = None

    def matches(self, tree: HTMLParser) -> Iterator[tuple[Node, str]]:
        for node in tree.css(self.css):
            text = _node_text(node)
            if not text:
                continue
            if self.predicate is None or self.predicate(node, text):
                yield node, text


TARGETED_QUERIES: tuple[TargetedQuery, ...] = (
    TargetedQuery("div > div", "div > div"),
    TargetedQuery("tr:has(td)", "tr", lambda node, _text: node.css_first("td") is not None),
    TargetedQuery('div:contains("PUMP")', "div", lambda _node, text: "PUMP" in text),
    TargetedQuery('div:contains("NEW")', "div", lambda _node, text: "NEW" in text),
    TargetedQuery('span:contains("...")', "span", lambda _node, text: "..." in text),
)


class RecordExtractor:
    """Turn raw listing page content into ranked, deduplicated records."""

    LINE_SOURCE = "text_parsing"
    ELEMENT_SOURCE = "element_parsing"

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.settings = settings or ExtractionSettings()
        self.logger = logger or structlog.get_logger("launch_watch.extractor")

    def extract(self, content: str, base_url: str | None = None) -> list[Record]:
        """Run every strategy over ``content`` and merge the results.

        Never raises: unparseable input yields an empty list.
        """

        if not isinstance(content, str) or not content.strip():
            return []
        try:
            tree = HTMLParser(content)
            tree.strip_tags(NOISE_TAGS)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("extract_parse_failed", error=str(exc))
            return []

        candidates: list[Record] = []
        strategies: tuple[tuple[str, Callable[[], list[Record]]], ...] = (
            ("line_pattern", lambda: self.parse_by_text_pattern(tree)),
            ("structural", lambda: self.parse_by_structure(tree, base_url)),
            ("targeted", lambda: self.parse_by_selectors(tree)),
        )
        counts: dict[str, int] = {}
        for name, strategy in strategies:
            try:
                produced = strategy()
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("extract_strategy_failed", strategy=name, error=str(exc))
                produced = []
            counts[name] = len(produced)
            candidates.extend(produced)

        records = self.merge(candidates)
        self.logger.debug("extract_completed", candidates=counts, kept=len(records))
        return records

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------
    def parse_by_text_pattern(self, tree: HTMLParser) -> list[Record]:
        root = tree.body or tree.root
        if root is None:
            return []
        page_text = root.text(deep=True, separator="", strip=False) or ""
        records: list[Record] = []
        for raw_line in page_text.split("\n"):
            line = raw_line.strip()
            if len(line) <= MIN_LINE_LENGTH or not is_token_line(line):
                continue
            record = self.extract_from_line(line, self.LINE_SOURCE)
            if record is not None:
                records.append(record)
        return records

    def parse_by_structure(self, tree: HTMLParser, base_url: str | None = None) -> list[Record]:
        records: list[Record] = []
        for node in tree.css("*"):
            if not self._is_container(node):
                continue
            text = _node_text(node)
            if len(text) < MIN_CONTAINER_TEXT or not contains_token_info(text):
                continue
            record = self.extract_from_element(node, text, base_url)
            if record is not None:
                records.append(record)
        return records

    def parse_by_selectors(self, tree: HTMLParser) -> list[Record]:
        records: list[Record] = []
        for query in TARGETED_QUERIES:
            for _node, text in query.matches(tree):
                if not is_token_line(text):
                    continue
                record = self.extract_from_line(text, f"selector:{query.label}")
                if record is not None:
                    records.append(record)
        return records

    # ------------------------------------------------------------------
    # Field derivation
    # ------------------------------------------------------------------
    def extract_from_line(
        self, line: str, source: str, extra_links: Iterable[str] = ()
    ) -> Record | None:
        clean = WHITESPACE_RE.sub(" ", line).strip()
        symbol_match = SYMBOL_RE.search(clean)
        if symbol_match is None:
            return None
        symbol = symbol_match.group(1)

        address_match = ADDRESS_RE.search(clean)
        address = f"{address_match.group(1)}..." if address_match else None

        if "PUMP" in clean:
            status = TokenStatus.PUMPING
        elif "DUMP" in clean:
            status = TokenStatus.DUMPING
        else:
            status = TokenStatus.NEW

        links = _unique([*LINK_RE.findall(clean), *extra_links])[: self.settings.max_links]
        has_signal = any(signal in clean for signal in STATUS_SIGNALS)
        return Record(
            symbol=symbol,
            name=self._derive_name(clean, symbol),
            address=address,
            status=status,
            links=tuple(links),
            raw_excerpt=clean[: self.settings.excerpt_length],
            source=source,
            confidence=score_confidence(symbol, address, has_signal, links),
        )

    def extract_from_element(self, node: Node, text: str, base_url: str | None = None) -> Record | None:
        if SYMBOL_RE.search(text) is None:
            return None
        parent_text = _node_text(node.parent)[:PARENT_CONTEXT_CHARS]
        hrefs = self._harvest_links(node, base_url)
        return self.extract_from_line(f"{text} {parent_text}", self.ELEMENT_SOURCE, hrefs)

    def merge(self, candidates: Iterable[Record]) -> list[Record]:
        seen: set[str] = set()
        kept: list[Record] = []
        for record in candidates:
            if record.confidence < self.settings.min_confidence:
                continue
            if record.identity_key in seen:
                continue
            seen.add(record.identity_key)
            kept.append(record)
        kept.sort(key=lambda record: record.confidence, reverse=True)
        return kept[: self.settings.max_results]

    # ------------------------------------------------------------------
    @staticmethod
    def _derive_name(clean: str, symbol: str) -> str:
        words = clean.split(" ")
        candidate: str | None = None
        try:
            index = words.index(symbol)
        except ValueError:
            index = -1
        if index > 0:
            candidate = words[index - 1]
        if not candidate or len(candidate) < 2 or candidate == symbol:
            follow = re.search(rf"{re.escape(symbol)}\s+([A-Za-z\-]+)\s+", clean)
            if follow:
                candidate = follow.group(1)
        return format_name(candidate, symbol)

    @staticmethod
    def _is_container(node: Node) -> bool:
        if node.tag in CONTAINER_TAGS:
            return True
        classes = (node.attributes.get("class") or "").lower()
        return any(hint in classes for hint in CONTAINER_CLASS_HINTS)

    @staticmethod
    def _harvest_links(node: Node, base_url: str | None) -> list[str]:
        hrefs: list[str] = []
        for anchor in node.css("a[href]"):
            href = (anchor.attributes.get("href") or "").strip()
            if not href or href.startswith(("javascript:", "#", "mailto:")):
                continue
            full_url = urljoin(base_url, href) if base_url else href
            if urlparse(full_url).scheme in ("http", "https"):
                hrefs.append(full_url)
        return _unique(hrefs)


__all__ = [
    "RecordExtractor",
    "TARGETED_QUERIES",
    "contains_token_info",
    "format_name",
    "is_token_line",
    "score_confidence",
]
