"""Custom hatchling build hook that compiles libpg_query and bundles the shared library."""

from __future__ import annotations

import os
import platform
import subprocess
from pathlib import Path
from typing import Any

from hatchling.builders.hooks.plugin.interface import BuildHookInterface

SKIP_ENV = "PGNORMALIZE_SKIP_NATIVE_BUILD"

# Only platforms where libpg_query's Makefile can produce a shared library.
_LIB_NAMES = {
    "Linux": "libpg_query.so",
    "Darwin": "libpg_query.dylib",
}


class CustomBuildHook(BuildHookInterface):
    """Build hook that compiles libpg_query and includes it in the wheel."""

    PLUGIN_NAME = "custom"

    def initialize(self, version: str, build_data: dict[str, Any]) -> None:
        """Compile libpg_query and inject the shared library into the wheel.

        Without the ``vendor/libpg_query`` sources (or with
        ``PGNORMALIZE_SKIP_NATIVE_BUILD=1``) a pure-Python wheel is built and
        the library is located at runtime instead.
        """
        if os.environ.get(SKIP_ENV):
            self.app.display_warning(f"{SKIP_ENV} is set, skipping native library build.")
            return

        libpg_query_dir = Path(self.root) / "vendor" / "libpg_query"
        if not (libpg_query_dir / "Makefile").exists():
            self.app.display_warning(
                "vendor/libpg_query/Makefile not found, skipping native library build. "
                "libpg_query will be loaded from PGNORMALIZE_LIBPG_QUERY or the system library path."
            )
            return

        lib_name = _LIB_NAMES.get(platform.system())
        if lib_name is None:
            self.app.display_warning(
                f"Building libpg_query is not supported on {platform.system()}; "
                "set PGNORMALIZE_LIBPG_QUERY to a prebuilt library at runtime."
            )
            return

        subprocess.check_call(["make", "build_shared"], cwd=libpg_query_dir)

        lib_path = libpg_query_dir / lib_name
        if not lib_path.exists():
            msg = f"Expected shared library not found after build: {lib_path}"
            raise RuntimeError(msg)

        build_data["force_include"][str(lib_path)] = f"pgnormalize/{lib_name}"
        build_data["infer_tag"] = True
        build_data["pure_python"] = False

    def clean(self, versions: list[str]) -> None:
        """Remove compiled artifacts from the vendor directory."""
        libpg_query_dir = Path(self.root) / "vendor" / "libpg_query"
        if (libpg_query_dir / "Makefile").exists():
            subprocess.call(["make", "clean"], cwd=libpg_query_dir)
