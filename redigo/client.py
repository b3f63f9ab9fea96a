"""Client for a redigo server, speaking RESP3 over an open connection."""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from redigo.errors import ErrorKind, RedigoError
from redigo.parser import RespParser

T = TypeVar("T")

_REPLY_SIZE_LIMIT = 10240


def _encode_request(parts: tuple[str, ...]) -> bytes:
    encoded = [part.encode("utf-8") for part in parts]
    return b"*%d\r\n" % len(encoded) + b"".join(
        b"$%d\r\n%s\r\n" % (len(part), part) for part in encoded
    )


class Client:
    """Sends commands over a connected socket and decodes the replies.

    The client does not own the connection; closing it is up to the caller.
    Error replies from the server are raised as ``ERROR_RECEIVED`` errors,
    a failed send as ``UNABLE_TO_SEND_REQUEST``, and a connection closed by
    the server as ``EOFError``.
    """

    def __init__(self, conn: Any) -> None:
        self._conn = conn
        self._parser = RespParser(conn, _REPLY_SIZE_LIMIT)

    def _call(self, *parts: str) -> None:
        payload = _encode_request(parts)
        try:
            self._conn.sendall(payload)
        except OSError as exc:
            raise RedigoError(ErrorKind.UNABLE_TO_SEND_REQUEST, cause=exc) from exc
        self._parser.read()

    def _reply(self, parse: Callable[[], T], null_allowed: bool) -> Optional[T]:
        try:
            return parse()
        except RedigoError as exc:
            if exc.kind is not ErrorKind.UNEXPECTED_FIRST_BYTE:
                raise
            received = exc.context.get("received")
            if received == "-":
                raise self._parser.parse_error() from None
            if null_allowed and received == "_":
                self._parser.parse_null()
                return None
            raise

    def _string_reply(self) -> str:
        result = self._reply(self._parser.parse_blob_string, null_allowed=True)
        return "" if result is None else result

    def _null_reply(self) -> None:
        self._reply(self._parser.parse_null, null_allowed=False)

    def get(self, key: str) -> str:
        """Value stored at ``key``, or an empty string when there is none."""
        self._call("GET", key)
        return self._string_reply()

    def set(self, key: str, value: str) -> None:
        self._call("SET", key, value)
        self._null_reply()

    def rpush(self, key: str, *args: str) -> None:
        self._call("RPUSH", key, *args)
        self._null_reply()

    def rpop(self, key: str) -> str:
        """Last element of the list, or an empty string when there is none."""
        self._call("RPOP", key)
        return self._string_reply()

    def lpush(self, key: str, *args: str) -> None:
        self._call("LPUSH", key, *args)
        self._null_reply()

    def lpop(self, key: str) -> str:
        """First element of the list, or an empty string when there is none."""
        self._call("LPOP", key)
        return self._string_reply()

    def llen(self, key: str) -> int:
        self._call("LLEN", key)
        result = self._reply(self._parser.parse_uint, null_allowed=False)
        assert result is not None
        return result

    def lindex(self, key: str, index: int) -> str:
        """Element at ``index``, or an empty string when out of range."""
        self._call("LINDEX", key, str(index))
        return self._string_reply()

    def delete(self, key: str) -> None:
        self._call("DEL", key)
        self._null_reply()

    def ping(self) -> str:
        self._call("PING")
        result = self._reply(self._parser.parse_blob_string, null_allowed=False)
        assert result is not None
        return result