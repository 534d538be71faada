"""Engine components: fetch → extract → dedup → format."""

from .dedup import DedupFilter
from .extractor import RecordExtractor
from .fallback import development_records
from .fetcher import FetchError, FetchResponse, Fetcher
from .formatter import format_check_digest, format_record, format_summary
from .record import Record, TokenStatus, identity_key

__all__ = [
    "DedupFilter",
    "FetchError",
    "FetchResponse",
    "Fetcher",
    "Record",
    "RecordExtractor",
    "TokenStatus",
    "development_records",
    "format_check_digest",
    "format_record",
    "format_summary",
    "identity_key",
]
