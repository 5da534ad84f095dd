"""PostgreSQL query normalization on top of libpg_query."""

from pgnormalize.errors import PgQueryError
from pgnormalize.normalize import (
    PLACEHOLDER,
    fill_in_constant_lengths,
    generate_normalized_query,
    normalize,
    normalize_parsed,
)
from pgnormalize.parse import ParseResult, parse
from pgnormalize.scan import ScanResult, ScanToken, scan
from pgnormalize.spans import ConstantSpan, collect_constant_spans, sort_spans

__all__ = [
    "collect_constant_spans",
    "ConstantSpan",
    "fill_in_constant_lengths",
    "generate_normalized_query",
    "normalize_parsed",
    "normalize",
    "parse",
    "ParseResult",
    "PgQueryError",
    "PLACEHOLDER",
    "scan",
    "ScanResult",
    "ScanToken",
    "sort_spans",
]
