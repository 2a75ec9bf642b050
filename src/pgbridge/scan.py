"""SQL scanning/tokenization via libpg_query."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pgbridge.buffers import encode_input
from pgbridge.lifecycle import copy_protobuf, invoke
from pgbridge.schema import pb2

if TYPE_CHECKING:
    from pgbridge.buffers import SqlInput


def scan(query: SqlInput) -> Any:
    """Tokenize a SQL string into a sequence of scan tokens.

    Calls libpg_query's ``pg_query_scan`` to tokenize the input and returns the deserialized ``ScanResult`` protobuf
    message containing a list of ``ScanToken`` objects with token type, keyword kind, and byte positions.

    Args:
        query: A SQL string to tokenize, or NUL-terminated UTF-8 bytes.

    Returns:
        A ``ScanResult`` protobuf message with ``version`` (int) and ``tokens`` (list of ``ScanToken``) fields.

    Raises:
        QueryError: If the input contains a scan error (e.g., unterminated string literal).
        DecodeError: If the token message exceeds the protobuf runtime's decoding limits.
    """
    with encode_input(query) as buf, invoke("scan", buf.pointer) as result:
        data = copy_protobuf(result.check().pbuf)
    return pb2().ScanResult.FromString(data)
