"""Invocation and release of libpg_query results.

Every engine call returns a struct that owns engine-allocated memory. :class:`NativeResult` walks each struct through
``INVOKED -> INSPECTED -> EXTRACTING -> RELEASED``: the error pointer is read once, payload bytes are copied into
Python objects, and the matching ``pg_query_free_*`` function runs exactly once on every exit path.
"""

from __future__ import annotations

import ctypes
import enum
import logging
import sys
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

from pgbridge import native
from pgbridge.errors import translate_error

if TYPE_CHECKING:
    from types import TracebackType

    from pgbridge.native import PgQueryProtobuf

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=ctypes.Structure)


class ResultState(enum.Enum):
    INVOKED = "invoked"
    INSPECTED = "inspected"
    EXTRACTING = "extracting"
    RELEASED = "released"


class NativeResult(Generic[S]):
    """Scoped ownership of one engine result struct.

    Use as a context manager; exiting the block frees the result whether the block finished, raised a translated
    :class:`~pgbridge.QueryError`, or failed while copying the payload.

    Example:
        >>> with invoke("normalize", buf.pointer) as result:  # doctest: +SKIP
        ...     text = copy_string(result.check().normalized_query)
    """

    __slots__ = ("_free", "_result", "operation", "state")

    def __init__(self, result: S, free: Callable[[S], None], operation: str) -> None:
        self._result = result
        self._free = free
        self.operation = operation
        self.state = ResultState.INVOKED

    def check(self) -> S:
        """Inspect the error pointer and return the struct for extraction.

        Raises:
            QueryError: If the engine reported an error. The error text is copied before the result is released.
            RuntimeError: If the result was already inspected or released.
        """
        if self.state is not ResultState.INVOKED:
            raise RuntimeError(f"{self.operation} result already {self.state.value}")
        self.state = ResultState.INSPECTED
        err_ptr = self._result.error
        if err_ptr:
            error = translate_error(err_ptr.contents)
            logger.debug("%s reported error at cursor %d: %s", self.operation, error.cursor_position, error.message)
            raise error
        self.state = ResultState.EXTRACTING
        return self._result

    def release(self) -> None:
        """Free the engine memory behind this result. Later calls are no-ops."""
        if self.state is ResultState.RELEASED:
            return
        self.state = ResultState.RELEASED
        self._free(self._result)
        logger.debug("%s result released", self.operation)

    def __enter__(self) -> NativeResult[S]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def invoke(operation: str, *args: Any) -> NativeResult[Any]:
    """Call one engine operation from :data:`pgbridge.native.OPERATIONS`.

    Args:
        operation: Catalog key such as ``"parse_protobuf_opts"``.
        *args: Arguments for the engine function (input pointer, option bits, structs).

    Returns:
        A :class:`NativeResult` that must be used as a context manager.

    Raises:
        KeyError: If *operation* is not in the catalog.
    """
    entry = native.OPERATIONS[operation]
    lib = native.get_lib()
    free = getattr(lib, entry.free)
    result = getattr(lib, entry.function)(*args)
    logger.debug("%s invoked", operation)
    return NativeResult(result, free, operation)


# ---------------------------------------------------------------------------
# Payload copy helpers
# ---------------------------------------------------------------------------


def copy_string(value: bytes | None) -> str | None:
    """Decode a ``char*`` field already copied by ctypes; ``None`` stays ``None``."""
    if value is None:
        return None
    return value.decode("utf-8")


def check_count(count: int, what: str) -> int:
    """Validate an engine-reported element count or length.

    Raises:
        OverflowError: If *count* is negative or cannot be addressed on this platform.
    """
    if count < 0 or count > sys.maxsize:
        raise OverflowError(f"engine reported an unrepresentable {what}: {count}")
    return count


def copy_protobuf(pbuf: PgQueryProtobuf) -> bytes:
    """Copy a ``PgQueryProtobuf`` payload into a ``bytes`` object.

    A NULL pointer or zero length yields ``b""``.
    """
    length = check_count(pbuf.len, "protobuf length")
    if not pbuf.data or length == 0:
        return b""
    return ctypes.string_at(pbuf.data, length)
