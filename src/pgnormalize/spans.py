"""Collecting the source locations of literal constants from a parse tree."""

from __future__ import annotations

from dataclasses import dataclass
from operator import attrgetter
from typing import Any

import structlog

logger = structlog.get_logger()

CONSTANT_NODE_TYPES = frozenset({"A_Const"})

_SUBTREE_ERRORS = (TypeError, ValueError)


@dataclass
class ConstantSpan:
    """Byte range of one literal constant in the source text.

    ``length`` is ``None`` until the constant's token has been located in the
    source; spans left unresolved (duplicates, or constants past the last token
    the scanner produced) are ignored when the query is rewritten.
    """

    location: int
    length: int | None = None

    @property
    def resolved(self) -> bool:
        return self.length is not None


def _constant_location(body: Any) -> int:
    if not isinstance(body, dict):
        raise TypeError(f"Constant node body must be an object, got {type(body).__name__}")
    location = body.get("location", -1)
    if isinstance(location, bool) or not isinstance(location, int):
        raise TypeError(f"Constant location must be an integer, got {location!r}")
    return location


def _record_node(node: Any, spans: list[ConstantSpan]) -> list[Any]:
    """Record the constants held directly by *node* and return its child subtrees."""
    if isinstance(node, list):
        return node
    if not isinstance(node, dict):
        return []

    children = []
    for key, value in node.items():
        if key in CONSTANT_NODE_TYPES:
            location = _constant_location(value)
            if location >= 0:
                spans.append(ConstantSpan(location))
        if isinstance(value, (dict, list)):
            children.append(value)
    return children


def record_constants(node: Any, spans: list[ConstantSpan]) -> bool:
    """Append a span for every located constant under *node*, depth-first pre-order.

    The walk keeps an explicit stack, so tree depth is not bounded by the
    interpreter recursion limit.  Each subtree is visited in isolation: if
    visiting it fails, the spans it recorded before failing are kept, the rest
    of it is skipped, and its siblings are still visited.

    Args:
        node: A JSON parse tree fragment (dict, list or scalar).
        spans: Spans found so far; appended to in traversal order.

    Returns:
        ``True`` if every subtree was visited, ``False`` if any was skipped.
    """
    complete = True
    stack = [node]
    while stack:
        current = stack.pop()
        try:
            children = _record_node(current, spans)
        except _SUBTREE_ERRORS as exc:
            logger.warning(
                "Skipping subtree while collecting constants",
                error=str(exc),
                error_type=type(exc).__name__,
                spans_so_far=len(spans),
            )
            complete = False
            continue
        stack.extend(reversed(children))
    return complete


def collect_constant_spans(tree: Any) -> list[ConstantSpan]:
    """Return an unresolved span for every ``A_Const`` node with a known location.

    Nodes whose ``location`` is missing or ``-1`` are skipped. Spans come back
    in traversal order, not sorted, and may contain the same location twice.

    Example:
        >>> tree = [{"A_Const": {"ival": {"ival": 1}, "location": 7}}]
        >>> collect_constant_spans(tree)
        [ConstantSpan(location=7, length=None)]
    """
    spans: list[ConstantSpan] = []
    record_constants(tree, spans)
    return spans


def sort_spans(spans: list[ConstantSpan]) -> None:
    """Sort *spans* in place by ascending location."""
    if len(spans) > 1:
        spans.sort(key=attrgetter("location"))
