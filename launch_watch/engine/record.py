"""Token launch record model."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

SYMBOL_PATTERN = re.compile(r"^[A-Z]{2,6}$")
NO_ADDRESS = "none"
UNKNOWN_NAME = "Unknown"


class TokenStatus(str, Enum):
    """Market state inferred from keywords on the listing page."""

    PUMPING = "PUMPING"
    DUMPING = "DUMPING"
    NEW = "NEW"

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]

    @property
    def label(self) -> str:
        return f"{self.glyph} {self.value}"


_GLYPHS = {
    TokenStatus.PUMPING: "\U0001f680",
    TokenStatus.DUMPING: "\U0001f4c9",
    TokenStatus.NEW: "\U0001f195",
}


def identity_key(symbol: str, address: str | None) -> str:
    return f"{symbol}:{address or NO_ADDRESS}"


@dataclass(frozen=True, slots=True)
class Record:
    """One extracted launch candidate.

    Instances are only ever built with a valid symbol; extraction paths that cannot
    derive one produce nothing instead of a partial record.
    """

    symbol: str
    name: str
    status: TokenStatus
    raw_excerpt: str
    source: str
    confidence: int
    address: str | None = None
    links: tuple[str, ...] = ()
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not SYMBOL_PATTERN.match(self.symbol or ""):
            raise ValueError(f"Invalid symbol: {self.symbol!r}")
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"Confidence out of range: {self.confidence}")

    @property
    def identity_key(self) -> str:
        return identity_key(self.symbol, self.address)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "address": self.address,
            "status": self.status.value,
            "glyph": self.status.glyph,
            "links": list(self.links),
            "raw_excerpt": self.raw_excerpt,
            "source": self.source,
            "confidence": self.confidence,
            "identity_key": self.identity_key,
            "detected_at": self.detected_at.isoformat(),
        }


__all__ = ["NO_ADDRESS", "Record", "SYMBOL_PATTERN", "TokenStatus", "UNKNOWN_NAME", "identity_key"]
