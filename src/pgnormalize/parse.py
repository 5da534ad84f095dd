"""SQL query parsing via libpg_query."""

from __future__ import annotations

import json
from typing import Any, NamedTuple

import structlog

from pgnormalize.errors import check_error
from pgnormalize.native import load_library

logger = structlog.get_logger()


class ParseResult(NamedTuple):
    """A parse tree decoded from libpg_query's JSON output.

    Attributes:
        version: PostgreSQL version number the parser was built from (``0`` for
            libpg_query releases that predate the versioned tree format).
        stmts: One ``RawStmt`` dict per statement, e.g.
            ``{"stmt": {"SelectStmt": {...}}, "stmt_len": 8}``.
        stderr_buffer: Anything the parser wrote to stderr while parsing
            (typically warnings), or an empty string.
    """

    version: int
    stmts: list[dict[str, Any]]
    stderr_buffer: str = ""


def parse(query: str) -> ParseResult:
    """Parse a SQL query into a JSON-shaped syntax tree.

    Every literal constant appears as an ``A_Const`` node whose ``location``
    field is the byte offset where the literal begins in the UTF-8 encoded
    query.

    Args:
        query: A SQL query string.

    Returns:
        A ``ParseResult`` holding the statement list and captured stderr output.

    Raises:
        PgQueryError: If the query contains a syntax error.
        OSError: If libpg_query cannot be loaded.

    Example:
        >>> tree = parse("SELECT 1")
        >>> list(tree.stmts[0]["stmt"])
        ['SelectStmt']
    """
    lib = load_library()
    result = lib.pg_query_parse(query.encode("utf-8"))
    try:
        check_error(result)
        raw: bytes = result.parse_tree
        stderr_buffer = result.stderr_buffer.decode("utf-8", errors="replace") if result.stderr_buffer else ""
    finally:
        lib.pg_query_free_parse_result(result)

    if stderr_buffer:
        logger.debug("Parser wrote to stderr", stderr=stderr_buffer)

    tree = json.loads(raw)
    if isinstance(tree, list):
        return ParseResult(version=0, stmts=tree, stderr_buffer=stderr_buffer)
    return ParseResult(version=tree.get("version", 0), stmts=tree.get("stmts", []), stderr_buffer=stderr_buffer)
