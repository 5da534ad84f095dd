"""SQL query normalization: replacing literal constants with ``?`` placeholders."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

from pgnormalize.parse import parse
from pgnormalize.scan import COMMENT_TOKENS, scan
from pgnormalize.spans import ConstantSpan, collect_constant_spans, sort_spans

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = structlog.get_logger()

PLACEHOLDER = b"?"


class Token(Protocol):
    """Anything with the byte offsets of one lexical token (``end`` exclusive).

    A ``token`` attribute, when present, is libpg_query's token kind; comment
    tokens are skipped.
    """

    @property
    def start(self) -> int: ...

    @property
    def end(self) -> int: ...


def fill_in_constant_lengths(spans: list[ConstantSpan], source: bytes, tokens: Iterable[Token]) -> None:
    """Set the byte length of each constant by re-scanning the source.

    *spans* is sorted by location first.  *tokens* is consumed through a single
    forward-only iterator, so the whole pass costs one scan of the source no
    matter how many constants there are.  Comment tokens are dropped from it,
    leaving the token sequence the parser itself consumed.

    A span whose location repeats an earlier one is a duplicate and keeps
    ``length=None``.  A ``-`` at a constant's location means the parser folded a
    unary minus into the constant, so the span is extended over the following
    token as well; ``x = 1`` and ``x = -2`` then normalize identically.  If the
    tokens run out before a constant is reached, resolution stops and that span
    and every later one stay unresolved.

    Args:
        spans: Constant spans collected from the parse tree, modified in place.
        source: The UTF-8 encoded query the spans and tokens refer to.
        tokens: Tokens of *source* in order, e.g. ``scan(query).tokens``.
    """
    sort_spans(spans)
    stream = (t for t in tokens if getattr(t, "token", None) not in COMMENT_TOKENS)
    last_location = -1

    for index, span in enumerate(spans):
        location = span.location
        if location <= last_location:
            continue

        # The scanner should land on the constant exactly; if it overshoots, work from there.
        token = next((t for t in stream if t.start >= location), None)
        if token is not None and source[location : location + 1] == b"-":
            token = next(stream, None)

        if token is None:
            logger.warning(
                "Ran out of tokens before all constants were located",
                location=location,
                unresolved=len(spans) - index,
            )
            return

        span.length = token.end - location
        last_location = location


def generate_normalized_query(spans: list[ConstantSpan], source: bytes) -> bytes:
    """Rewrite *source* with one placeholder per resolved constant span.

    Bytes outside the constants are copied verbatim, so whitespace and comments
    survive.  Unresolved spans are ignored.  *spans* must already be sorted and
    non-overlapping, as :func:`fill_in_constant_lengths` leaves them.

    Returns:
        The normalized query, never longer than *source*.
    """
    normalized = bytearray()
    cursor = 0

    for span in spans:
        if not span.resolved:
            continue
        assert span.location >= cursor, f"constant at byte {span.location} overlaps the one ending at byte {cursor}"
        normalized += source[cursor : span.location]
        normalized += PLACEHOLDER
        cursor = span.location + span.length

    assert cursor <= len(source), f"constant ends at byte {cursor}, past the end of the query"
    normalized += source[cursor:]

    assert len(normalized) <= len(source)
    return bytes(normalized)


def normalize_parsed(source: bytes, tree: Any, tokens: Iterable[Token]) -> bytes:
    """Normalize *source* given its parse tree and its tokens.

    This is the parser-independent core of :func:`normalize`.  *tokens* is only
    iterated when the tree contains at least one located constant.

    Args:
        source: The UTF-8 encoded query.
        tree: The JSON-shaped parse tree of *source* (``A_Const`` nodes carry a
            byte ``location``).
        tokens: Tokens of *source* with byte ``start``/``end`` offsets.

    Returns:
        The normalized query bytes.
    """
    spans = collect_constant_spans(tree)
    if not spans:
        return source
    fill_in_constant_lengths(spans, source, tokens)
    return generate_normalized_query(spans, source)


def normalize(query: str) -> str:
    """Normalize a SQL query by replacing literal constants with ``?``.

    Numbers, strings, bit-strings and the like each become a single ``?``; a
    negative number including its sign becomes one ``?`` too.  Everything else,
    including whitespace and comments, is kept as written, so queries that
    differ only in their literal values normalize to the same text.

    Args:
        query: A SQL query string.

    Returns:
        The normalized query.

    Raises:
        PgQueryError: If the query cannot be parsed.
        OSError: If libpg_query cannot be loaded.

    Example:
        >>> normalize("SELECT * FROM users WHERE id = 42 AND name = 'Alice'")
        'SELECT * FROM users WHERE id = ? AND name = ?'
        >>> normalize("SELECT * FROM users WHERE id = -42")
        'SELECT * FROM users WHERE id = ?'
    """
    tree = parse(query)
    spans = collect_constant_spans(tree.stmts)
    if not spans:
        return query

    source = query.encode("utf-8")
    fill_in_constant_lengths(spans, source, scan(query).tokens)
    return generate_normalized_query(spans, source).decode("utf-8")
