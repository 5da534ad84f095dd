from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import pytest

from pgnormalize import ScanToken
from pgnormalize.native import load_library

if TYPE_CHECKING:
    from collections.abc import Callable

# -- libpg_query availability --------------------------------------------------


def _libpg_query_available() -> bool:
    try:
        load_library()
    except (OSError, AttributeError):
        return False
    return True


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if _libpg_query_available():
        return
    skip = pytest.mark.skip(reason="libpg_query shared library not available")
    for item in items:
        if "libpg_query" in item.keywords:
            item.add_marker(skip)


# -- Scripted collaborators for the normalization core -------------------------

# Just enough of SQL's lexical structure to stand in for the real scanner in
# tests: quoted strings, numbers, comments, words and single-byte operators.
_FAKE_TOKEN = re.compile(rb"'(?:[^']|'')*'|\d+(?:\.\d+)?|--[^\n]*|/\*.*?\*/|\w+|\S", re.DOTALL)


_COMMENT_KINDS = {b"--": 275, b"/*": 276}


def _fake_tokens(source: bytes | str) -> list[ScanToken]:
    if isinstance(source, str):
        source = source.encode("utf-8")
    return [
        ScanToken(m.start(), m.end(), _COMMENT_KINDS.get(m.group()[:2], 0)) for m in _FAKE_TOKEN.finditer(source)
    ]


def _a_const(location: int, **value: Any) -> dict[str, Any]:
    body: dict[str, Any] = dict(value or {"ival": {"ival": 1}})
    body["location"] = location
    return {"A_Const": body}


def _select_tree(*locations: int) -> list[dict[str, Any]]:
    """A one-statement tree whose target list holds one constant per location."""
    targets = [{"ResTarget": {"val": _a_const(loc), "location": loc}} for loc in locations]
    return [{"stmt": {"SelectStmt": {"targetList": targets, "op": "SETOP_NONE"}}}]


@pytest.fixture
def fake_tokens() -> Callable[[bytes | str], list[ScanToken]]:
    return _fake_tokens


@pytest.fixture
def a_const() -> Callable[..., dict[str, Any]]:
    return _a_const


@pytest.fixture
def select_tree() -> Callable[..., list[dict[str, Any]]]:
    return _select_tree


def byte_offset(sql: str, text: str, start: int = 0) -> int:
    """Byte offset of *text* in the UTF-8 encoding of *sql*."""
    return sql.encode("utf-8").index(text.encode("utf-8"), start)


@pytest.fixture
def offset_of() -> Callable[..., int]:
    return byte_offset
