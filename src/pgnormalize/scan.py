"""SQL scanning/tokenization via libpg_query."""

from __future__ import annotations

import ctypes
import functools
from typing import NamedTuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import Message

from pgnormalize.errors import check_error
from pgnormalize.native import load_library

_PACKAGE = "pgnormalize.scan"

# Field numbers follow ScanResult/ScanToken in libpg_query's pg_query.proto.
# The Token and KeywordKind enums travel as varints and are read as plain ints.
_SCAN_TOKEN_FIELDS = (("start", 1), ("end", 2), ("token", 4), ("keyword_kind", 5))

# Token enum values of SQL_COMMENT and C_COMMENT. The parser never sees these.
COMMENT_TOKENS = frozenset({275, 276})


class ScanToken(NamedTuple):
    """One lexical token; ``start`` and ``end`` are byte offsets, ``end`` exclusive."""

    start: int
    end: int
    token: int = 0
    keyword_kind: int = 0


class ScanResult(NamedTuple):
    """Tokens produced by one scanner pass, in source order."""

    version: int
    tokens: list[ScanToken]


@functools.cache
def _scan_result_message() -> type[Message]:
    """Build the protobuf message class used to decode ``pg_query_scan`` output."""
    field = descriptor_pb2.FieldDescriptorProto
    proto = descriptor_pb2.FileDescriptorProto(name="pgnormalize/scan.proto", package=_PACKAGE, syntax="proto3")

    token = proto.message_type.add(name="ScanToken")
    for name, number in _SCAN_TOKEN_FIELDS:
        token.field.add(name=name, number=number, type=field.TYPE_INT32, label=field.LABEL_OPTIONAL)

    result = proto.message_type.add(name="ScanResult")
    result.field.add(name="version", number=1, type=field.TYPE_INT32, label=field.LABEL_OPTIONAL)
    result.field.add(
        name="tokens",
        number=2,
        type=field.TYPE_MESSAGE,
        label=field.LABEL_REPEATED,
        type_name=f".{_PACKAGE}.ScanToken",
    )

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(proto.SerializeToString())
    return message_factory.GetMessageClass(pool.FindMessageTypeByName(f"{_PACKAGE}.ScanResult"))


def decode_scan_result(data: bytes) -> ScanResult:
    """Decode a serialized libpg_query ``ScanResult`` protobuf payload."""
    message = _scan_result_message().FromString(data)
    tokens = [ScanToken(t.start, t.end, t.token, t.keyword_kind) for t in message.tokens]
    return ScanResult(version=message.version, tokens=tokens)


def scan(sql: str) -> ScanResult:
    """Tokenize a SQL string with PostgreSQL's core scanner.

    Comments are reported as tokens; whitespace is not. A negative number is
    two tokens (``-`` and the magnitude), exactly as the parser sees it.

    Args:
        sql: A SQL string to tokenize.

    Returns:
        A ``ScanResult`` with one ``ScanToken`` per lexical token.

    Raises:
        PgQueryError: If the input contains a scan error (e.g. an unterminated
            string literal).
        OSError: If libpg_query cannot be loaded.

    Example:
        >>> [(t.start, t.end) for t in scan("SELECT -5").tokens]
        [(0, 6), (7, 8), (8, 9)]
    """
    lib = load_library()
    result = lib.pg_query_scan(sql.encode("utf-8"))
    try:
        check_error(result)
        pbuf = result.pbuf
        data = ctypes.string_at(pbuf.data, pbuf.len) if pbuf.len else b""
    finally:
        lib.pg_query_free_scan_result(result)
    return decode_scan_result(data)
