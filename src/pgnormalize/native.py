"""Low-level ctypes bindings to libpg_query.

This module locates the libpg_query shared library, defines C struct bindings
for the result types pgnormalize uses, and declares function signatures. The
library is loaded on first use rather than at import time so that the pure
Python normalization core stays importable without it. It is an internal
module; use the public pgnormalize API instead.
"""

import ctypes
import ctypes.util
import functools
import os
import platform
from ctypes import POINTER, Structure, c_char_p, c_int, c_size_t, c_void_p
from pathlib import Path

LIBRARY_PATH_ENV = "PGNORMALIZE_LIBPG_QUERY"

_VENDORED_LIB_NAMES = {
    "Linux": "libpg_query.so",
    "Darwin": "libpg_query.dylib",
    "Windows": "pg_query.dll",
}


def _find_libpg_query() -> str:
    """Return the path of the libpg_query shared library to load.

    Resolution order: the ``PGNORMALIZE_LIBPG_QUERY`` environment variable, a
    vendored copy bundled alongside this module, then
    ``ctypes.util.find_library`` for system-installed libraries.

    Raises:
        OSError: If libpg_query cannot be found via any method.
    """
    override = os.environ.get(LIBRARY_PATH_ENV)
    if override:
        if not Path(override).is_file():
            raise OSError(f"{LIBRARY_PATH_ENV} points to {override!r}, which is not a file.")
        return override

    lib_name = _VENDORED_LIB_NAMES.get(platform.system())
    if lib_name is not None:
        vendored = Path(__file__).parent / lib_name
        if vendored.is_file():
            return str(vendored)

    path = ctypes.util.find_library("pg_query")
    if path is not None:
        return path

    raise OSError(
        "libpg_query shared library not found. "
        "Install pgnormalize from a pre-built wheel, set "
        f"{LIBRARY_PATH_ENV} to the library path, or install libpg_query and "
        "ensure it is on your library search path "
        "(e.g. LD_LIBRARY_PATH on Linux, DYLD_LIBRARY_PATH on macOS)."
    )


# ---------------------------------------------------------------------------
# Struct definitions
# ---------------------------------------------------------------------------


class PgQueryError(Structure):
    """Mirrors the C PgQueryError struct."""

    _fields_ = [
        ("message", c_char_p),
        ("funcname", c_char_p),
        ("filename", c_char_p),
        ("lineno", c_int),
        ("cursorpos", c_int),
        ("context", c_char_p),
    ]


class PgQueryProtobuf(Structure):
    """Mirrors the C PgQueryProtobuf struct (len + data).

    ``data`` is a ``c_void_p`` because protobuf payloads contain embedded null
    bytes that ``c_char_p`` would truncate at.
    """

    _fields_ = [
        ("len", c_size_t),
        ("data", c_void_p),
    ]


class PgQueryParseResult(Structure):
    """Result from pg_query_parse (JSON parse tree)."""

    _fields_ = [
        ("parse_tree", c_char_p),
        ("stderr_buffer", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


class PgQueryScanResult(Structure):
    """Result from pg_query_scan (binary protobuf scan tokens)."""

    _fields_ = [
        ("pbuf", PgQueryProtobuf),
        ("stderr_buffer", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


# ---------------------------------------------------------------------------
# Load library and declare function signatures
# ---------------------------------------------------------------------------


def _declare_signatures(lib: ctypes.CDLL) -> None:
    lib.pg_query_parse.argtypes = [c_char_p]
    lib.pg_query_parse.restype = PgQueryParseResult

    lib.pg_query_scan.argtypes = [c_char_p]
    lib.pg_query_scan.restype = PgQueryScanResult

    lib.pg_query_free_parse_result.argtypes = [PgQueryParseResult]
    lib.pg_query_free_parse_result.restype = None

    lib.pg_query_free_scan_result.argtypes = [PgQueryScanResult]
    lib.pg_query_free_scan_result.restype = None


@functools.cache
def load_library() -> ctypes.CDLL:
    """Load libpg_query once per process and return the configured handle.

    Raises:
        OSError: If the shared library cannot be located or loaded.
    """
    lib = ctypes.CDLL(_find_libpg_query())
    _declare_signatures(lib)
    return lib
