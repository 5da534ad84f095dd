"""Error handling for pgnormalize.

Provides the public PgQueryError exception and an internal helper that raises it
from the C result structs returned by libpg_query.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ctypes import Structure


class PgQueryError(Exception):
    """Raised when libpg_query cannot parse or scan a query.

    This is the only failure :func:`~pgnormalize.normalize` lets escape for bad
    input: when the parser rejects the text no normalization happens and the
    parser's diagnostic is surfaced unchanged.  Problems found later in the
    pipeline (a constant the scanner never reaches, a malformed subtree) are
    absorbed and produce a best-effort result instead.

    ``cursorpos`` is a **1-based byte offset** into the UTF-8 encoded query and
    is ``0`` when the position is unknown.

    Attributes:
        message: Human-readable error description from the PostgreSQL parser.
        cursorpos: 1-based byte offset where the error was detected, or ``0``.
        context: Additional parser context, or ``None``.
        funcname: Internal C function name where the error originated, or ``None``.
        filename: Internal C source file where the error originated, or ``None``.
        lineno: Line number in the internal C source file (``0`` when unavailable).

    Example:
        >>> from pgnormalize import normalize, PgQueryError
        >>> try:
        ...     normalize("SELECT * FORM users WHERE id = 1")
        ... except PgQueryError as e:
        ...     print(e.message, e.cursorpos)
        syntax error at or near "FORM" 10
    """

    def __init__(
        self,
        message: str,
        *,
        cursorpos: int = 0,
        context: str | None = None,
        funcname: str | None = None,
        filename: str | None = None,
        lineno: int = 0,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cursorpos = cursorpos
        self.context = context
        self.funcname = funcname
        self.filename = filename
        self.lineno = lineno

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, cursorpos={self.cursorpos})"


def _decode(value: bytes | None) -> str | None:
    return value.decode("utf-8", errors="replace") if value else None


def check_error(result: Structure) -> None:
    """Raise ``PgQueryError`` if a C result struct carries an error.

    The caller still owns *result* and must free it (typically in a ``finally``
    block) whether or not this raises.

    Args:
        result: A ctypes Structure with an ``error`` field (pointer to the C
            PgQueryError struct).
    """
    err_ptr = result.error
    if not err_ptr:
        return

    err = err_ptr.contents
    raise PgQueryError(
        _decode(err.message) or "unknown error",
        cursorpos=err.cursorpos,
        context=_decode(err.context),
        funcname=_decode(err.funcname),
        filename=_decode(err.filename),
        lineno=err.lineno,
    )
