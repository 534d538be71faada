"""Fixed records substituted for a failed fetch in development mode."""

from __future__ import annotations

from datetime import datetime, timezone

from .record import Record, TokenStatus

FALLBACK_SOURCE = "mock"


def development_records(now: datetime | None = None) -> list[Record]:
    detected_at = now or datetime.now(timezone.utc)
    return [
        Record(
            symbol="FPM",
            name="Funny Pants-Man",
            address="F45yyX...",
            status=TokenStatus.PUMPING,
            links=("https://t.me/communities/20049885148200371257",),
            raw_excerpt="FPM Funny Pants-Man FPM_PUMP DUMP RESUSED TORK NAME",
            source=FALLBACK_SOURCE,
            confidence=95,
            detected_at=detected_at,
        ),
        Record(
            symbol="SOMA",
            name="Gemalia-Meme",
            address="funATB...",
            status=TokenStatus.PUMPING,
            links=(
                "https://t.me/t/communities/20049885148200371257",
                "https://t.me/search?q=semalian&src=type#set_d1",
            ),
            raw_excerpt="SOMA Gemalia-Meme https://t.me/t/communities/20049885148200371257 PUMP DUMP RESUSED TORK NAME",
            source=FALLBACK_SOURCE,
            confidence=90,
            detected_at=detected_at,
        ),
        Record(
            symbol="BOBO",
            name="Bo Bo",
            address="GET31x...",
            status=TokenStatus.PUMPING,
            links=("https://t.me/t/communities/200498952422946621", "https://thelocal.ink/"),
            raw_excerpt="bo bo https://t.me/t/communities/200498952422946621 https://thelocal.ink/ PUMP DUMP RESUSED BAG TORK NAME",
            source=FALLBACK_SOURCE,
            confidence=85,
            detected_at=detected_at,
        ),
        Record(
            symbol="GOON",
            name="Artelett Goon Coin",
            address="v8xV4...",
            status=TokenStatus.NEW,
            links=(
                "https://t.me/nod/T60/x/satura/20049907264901224",
                "https://t.me/nod1979/satura/200457028189410816",
            ),
            raw_excerpt="GOON Artelett Goon Coin https://t.me/nod/T60/x/satura/20049907264901224 NEW RESUSED URL TORK",
            source=FALLBACK_SOURCE,
            confidence=80,
            detected_at=detected_at,
        ),
    ]


__all__ = ["FALLBACK_SOURCE", "development_records"]
