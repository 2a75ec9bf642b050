"""NUL-terminated UTF-8 input buffers for libpg_query calls.

Every ``const char*`` the engine accepts must be UTF-8 and end with a single ``0x00`` byte. Text is encoded into a
freshly allocated buffer; caller-supplied bytes are validated and passed through without copying.
"""

from __future__ import annotations

import ctypes
import logging
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

SqlInput = Union[str, bytes, bytearray, memoryview]


class EncodedBuffer:
    """A NUL-terminated UTF-8 buffer valid for the duration of one native call.

    Use as a context manager around the call. Owned buffers (from text) are dropped on exit; borrowed buffers (from
    caller bytes) stay with the caller, and their pin is released on exit.

    Attributes:
        owned: ``True`` when the buffer was allocated by :meth:`from_text`.
    """

    __slots__ = ("_data", "_pointer", "_view", "owned")

    def __init__(self, pointer: object, data: bytes | memoryview, *, owned: bool, view: memoryview | None = None):
        self._pointer: object | None = pointer
        self._data: bytes | memoryview | None = data
        self._view = view
        self.owned = owned

    @classmethod
    def from_text(cls, text: str) -> EncodedBuffer:
        """Encode *text* as UTF-8 into a newly allocated NUL-terminated buffer.

        Raises:
            TypeError: If *text* is not a ``str``.
            UnicodeEncodeError: If *text* contains lone surrogates.
        """
        if not isinstance(text, str):
            raise TypeError(f"SQL text must be str, not {type(text).__name__}")
        encoded = text.encode("utf-8")
        return cls(ctypes.create_string_buffer(encoded), encoded, owned=True)

    @classmethod
    def from_bytes(cls, buffer: bytes | bytearray | memoryview) -> EncodedBuffer:
        """Borrow a caller-supplied UTF-8 buffer that already ends with ``0x00``.

        ``bytes`` are passed to the engine without copying. Writable buffers (``bytearray``, writable ``memoryview``)
        are pinned: the buffer export taken here prevents them from being resized until the buffer is closed.

        Raises:
            TypeError: If *buffer* is not bytes-like.
            ValueError: If *buffer* is empty or its last byte is not ``0x00``.
        """
        if not isinstance(buffer, (bytes, bytearray, memoryview)):
            raise TypeError(f"SQL buffer must be bytes-like, not {type(buffer).__name__}")
        view = memoryview(buffer)
        try:
            if view.format != "B" or view.ndim != 1:
                view = view.cast("B")
            if len(view) == 0:
                raise ValueError("SQL buffer is empty; it must contain at least the NUL terminator")
            if view[-1] != 0:
                raise ValueError("SQL buffer must be NUL-terminated (last byte == 0x00)")

            pointer: object
            if isinstance(buffer, bytes):
                pointer = buffer
            elif not view.readonly:
                pointer = (ctypes.c_char * len(view)).from_buffer(view)
            else:
                logger.debug("copying read-only %d-byte buffer for native call", len(view))
                pointer = view.tobytes()
        except BaseException:
            # A traceback holding this frame must not keep the caller's buffer pinned.
            view.release()
            raise
        return cls(pointer, view[:-1], owned=False, view=view)

    @property
    def pointer(self) -> object:
        """The value to pass for a ``const char*`` parameter."""
        if self._pointer is None:
            raise ValueError("operation on a released SQL buffer")
        return self._pointer

    @property
    def data(self) -> bytes | memoryview:
        """The UTF-8 bytes without the terminator, for slicing by byte offsets."""
        if self._data is None:
            raise ValueError("operation on a released SQL buffer")
        return self._data

    def close(self) -> None:
        """Drop the allocation (owned) or release the pin (borrowed). Idempotent."""
        self._pointer = None
        self._data = None
        if self._view is not None:
            self._view.release()
            self._view = None

    def __len__(self) -> int:
        return len(self.data)

    def __enter__(self) -> EncodedBuffer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def encode_input(query: SqlInput) -> EncodedBuffer:
    """Build the engine input buffer for *query*.

    ``str`` goes through :meth:`EncodedBuffer.from_text`; bytes-like input must already be NUL-terminated and goes
    through :meth:`EncodedBuffer.from_bytes`.
    """
    if isinstance(query, str):
        return EncodedBuffer.from_text(query)
    if isinstance(query, (bytes, bytearray, memoryview)):
        return EncodedBuffer.from_bytes(query)
    raise TypeError(f"query must be str or NUL-terminated bytes, not {type(query).__name__}")
