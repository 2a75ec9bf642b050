"""Access to the generated protobuf schema for libpg_query's AST and token messages.

``pg_query_pb2`` is generated from the vendored ``pg_query.proto`` by the build hook and shipped inside the wheel. It
is imported on first use so that the binding layer itself works without it.
"""

from __future__ import annotations

import functools
import importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import ModuleType

SCHEMA_MODULE = "pgbridge.pg_query_pb2"


@functools.lru_cache(maxsize=None)
def pb2() -> ModuleType:
    """Return the generated ``pg_query_pb2`` module.

    Raises:
        ImportError: If the module was not generated at build time.
    """
    try:
        return importlib.import_module(SCHEMA_MODULE)
    except ModuleNotFoundError as exc:
        if exc.name != SCHEMA_MODULE:
            raise
        raise ImportError(
            f"{SCHEMA_MODULE} is missing. Build pgbridge from source with vendor/libpg_query checked out "
            "and protoc on PATH, or install a pre-built wheel."
        ) from exc


def is_available() -> bool:
    """Report whether the generated schema module can be imported."""
    try:
        pb2()
    except ImportError:
        return False
    return True
