"""Custom hatchling build hook that compiles libpg_query and bundles it with its protobuf schema."""

from __future__ import annotations

import os
import platform
import shutil
import subprocess
from pathlib import Path
from typing import Any

from hatchling.builders.hooks.plugin.interface import BuildHookInterface

_LIB_NAMES = {
    "Linux": "libpg_query.so",
    "Darwin": "libpg_query.dylib",
}

_SCHEMA_MODULE = "pg_query_pb2.py"


class CustomBuildHook(BuildHookInterface):
    """Build hook that compiles libpg_query and includes it in the wheel."""

    PLUGIN_NAME = "custom"

    def initialize(self, version: str, build_data: dict[str, Any]) -> None:
        """Compile libpg_query, generate ``pg_query_pb2`` and inject both into the wheel.

        Set ``PGBRIDGE_SKIP_NATIVE_BUILD=1`` to skip compilation (useful in CI where the native library is built in a
        separate step).
        """
        if os.environ.get("PGBRIDGE_SKIP_NATIVE_BUILD"):
            self.app.display_warning("PGBRIDGE_SKIP_NATIVE_BUILD is set, skipping native library build.")
            return

        root = Path(self.root)
        libpg_query_dir = root / "vendor" / "libpg_query"

        makefile = libpg_query_dir / "Makefile"
        if not makefile.exists():
            self.app.display_warning(
                "vendor/libpg_query/Makefile not found, skipping native library build. "
                "Run 'git submodule update --init' to fetch the source."
            )
            return

        system = platform.system()
        lib_name = _LIB_NAMES.get(system)
        if lib_name is None:
            msg = f"Unsupported platform for the bundled build: {system}; set PGBRIDGE_LIBRARY at runtime instead"
            raise RuntimeError(msg)

        subprocess.check_call(["make", "build_shared"], cwd=libpg_query_dir)

        lib_path = libpg_query_dir / lib_name
        if not lib_path.exists():
            msg = f"Expected shared library not found after build: {lib_path}"
            raise RuntimeError(msg)

        build_data["force_include"][str(lib_path)] = f"pgbridge/{lib_name}"

        schema_path = self._generate_schema(root, libpg_query_dir)
        if schema_path is not None:
            build_data["force_include"][str(schema_path)] = f"pgbridge/{_SCHEMA_MODULE}"

        # Mark as platform-specific wheel (not pure Python).
        build_data["infer_tag"] = True
        build_data["pure_python"] = False

    def _generate_schema(self, root: Path, libpg_query_dir: Path) -> Path | None:
        """Run ``protoc`` on the vendored ``pg_query.proto`` and return the generated module path."""
        proto_dir = libpg_query_dir / "protobuf"
        proto = proto_dir / "pg_query.proto"
        if not proto.exists():
            self.app.display_warning(f"{proto} not found, the wheel will not include {_SCHEMA_MODULE}.")
            return None

        protoc = shutil.which("protoc")
        if protoc is None:
            self.app.display_warning(f"protoc not found on PATH, the wheel will not include {_SCHEMA_MODULE}.")
            return None

        out_dir = root / "build" / "schema"
        out_dir.mkdir(parents=True, exist_ok=True)
        subprocess.check_call([protoc, f"--proto_path={proto_dir}", f"--python_out={out_dir}", str(proto)])

        generated = out_dir / _SCHEMA_MODULE
        if not generated.exists():
            msg = f"protoc did not produce {generated}"
            raise RuntimeError(msg)
        return generated

    def clean(self, versions: list[str]) -> None:
        """Remove compiled artifacts from the vendor directory."""
        root = Path(self.root)
        libpg_query_dir = root / "vendor" / "libpg_query"
        if libpg_query_dir.exists():
            subprocess.call(["make", "clean"], cwd=libpg_query_dir)
        schema_dir = root / "build" / "schema"
        if schema_dir.exists():
            shutil.rmtree(schema_dir)
