"""Parsing of RESP3 requests and replies out of a byte stream."""

from __future__ import annotations

import functools
import re
from typing import Any, Callable, Optional, TypeVar

from redigo import encoding
from redigo.cache import Cache
from redigo.errors import (
    ErrorKind,
    RedigoError,
    buffer_exhausted,
    index_out_of_range,
    key_not_found,
)

T = TypeVar("T")

Command = Callable[[Cache], bytes]

CRLF = b"\r\n"
CHUNK_SIZE = 4096

_INTEGER = re.compile(rb"[+-]?[0-9]+")


def _to_int(raw: bytes, kind: ErrorKind, allow_negative: bool = True) -> int:
    if _INTEGER.fullmatch(raw) is None:
        raise RedigoError(
            kind,
            cause=ValueError(f"invalid integer {raw!r}"),
            context={"provided": raw.decode("utf-8", errors="replace")},
        )
    value = int(raw)
    if value < 0 and not allow_negative:
        raise RedigoError(
            kind,
            cause=ValueError(f"negative size {value}"),
            context={"provided": str(value)},
        )
    return value


class RespParser:
    """Pulls RESP values out of a connection, one chunk at a time.

    Incoming data is held in an internal buffer. A command cut short by the
    end of a chunk is kept and joined to the next chunk, and the total size
    of a message spread over several chunks is bounded by
    ``message_size_limit``.
    """

    def __init__(self, conn: Any, message_size_limit: int) -> None:
        self.message_size_limit = message_size_limit
        self.new_connection(conn)

    def new_connection(self, conn: Any) -> None:
        """Attach a new connection and forget all state of the previous one."""
        self._conn = conn
        self._buffer = b""
        self._pos = 0
        self._total = 0
        self._pending = b""

    def load(self, data: bytes) -> None:
        """Feed a chunk of received bytes into the buffer.

        Raises ``MAX_SIZE_PER_CALL_EXCEEDED`` when the message, counting any
        unfinished command kept from earlier chunks, grows past the limit.
        """
        if self._pending:
            self._total += len(data)
            self._buffer = self._pending + data
        else:
            self._total = len(data)
            self._buffer = bytes(data)
        self._pos = 0
        self._pending = b""

        if self._total > self.message_size_limit:
            current = self._total
            self._total = 0
            self._buffer = b""
            raise RedigoError(
                ErrorKind.MAX_SIZE_PER_CALL_EXCEEDED,
                context={
                    "maxSize": str(self.message_size_limit),
                    "currentSize": str(current),
                },
            )

    def read(self) -> int:
        """Receive one chunk from the connection; return its size.

        Raises ``EOFError`` when the peer has closed the connection.
        """
        if self._conn is None:
            raise RuntimeError("no connection attached to the parser")
        data = self._conn.recv(CHUNK_SIZE)
        if not data:
            raise EOFError("connection closed by peer")
        self.load(data)
        return len(data)

    def parse_command(self) -> list[Command]:
        """Parse every complete command in the buffer.

        Stops quietly when the buffer runs out, keeping any unfinished
        command for the next chunk. Malformed input raises.
        """
        commands: list[Command] = []
        while True:
            start = self._pos
            try:
                args = self.parse_array(self.parse_blob_string)
            except RedigoError as exc:
                if self._pos > start:
                    self._pending = self._buffer[start:]
                if buffer_exhausted(exc):
                    return commands
                raise
            commands.append(select_command(args))

    def parse_array(self, transformer: Callable[[], T]) -> list[T]:
        """Parse an array whose elements are each read by ``transformer``."""
        self._expect(b"*")
        size = _to_int(
            self.read_until(CRLF),
            ErrorKind.UNABLE_TO_DETERMINE_BULK_ARRAY_SIZE,
            allow_negative=False,
        )
        return [transformer() for _ in range(size)]

    def parse_blob_string(self) -> str:
        self._expect(b"$")
        size = _to_int(
            self.read_until(CRLF),
            ErrorKind.UNABLE_TO_DETERMINE_RAW_STRING_SIZE,
            allow_negative=False,
        )
        data = self._take(size)
        self._take(len(CRLF))
        return data.decode("utf-8", errors="replace")

    def parse_null(self) -> None:
        self._expect(b"_")
        if self.read_until(CRLF):
            raise RedigoError(ErrorKind.NOT_NULL_FOUND_IN_PLACE_OF_NULL)

    def parse_uint(self) -> int:
        self._expect(b":")
        return _to_int(self.read_until(CRLF), ErrorKind.UNABLE_TO_CONVERT_LEN_TO_INT)

    def parse_error(self) -> RedigoError:
        """Parse an error reply and return it as an ``ERROR_RECEIVED`` error."""
        self._expect(b"-")
        text = self.read_until(CRLF)
        return RedigoError(
            ErrorKind.ERROR_RECEIVED,
            context={"text": text.decode("utf-8", errors="replace")},
        )

    def read_until(self, delimiter: bytes) -> bytes:
        """Consume bytes up to and including ``delimiter``; return those before it.

        When the delimiter is missing the rest of the buffer is consumed and
        ``UNABLE_TO_FIND_PATTERN`` is raised.
        """
        buffer = self._buffer
        end = len(buffer)
        start = self._pos
        pos = start
        first = delimiter[:1]
        rest = delimiter[1:]
        while True:
            found = buffer.find(first, pos, end)
            if found < 0:
                self._pos = end
                raise self._pattern_missing(delimiter)
            pos = found + 1
            for expected in rest:
                if pos >= end:
                    self._pos = end
                    raise self._pattern_missing(delimiter)
                got = buffer[pos]
                pos += 1
                if got != expected:
                    break
            else:
                self._pos = pos
                return buffer[start : pos - len(delimiter)]

    @staticmethod
    def _pattern_missing(delimiter: bytes) -> RedigoError:
        return RedigoError(
            ErrorKind.UNABLE_TO_FIND_PATTERN,
            cause=EOFError("end of buffer"),
            context={"pattern": delimiter.decode("latin-1")},
        )

    def _expect(self, marker: bytes) -> None:
        if self._pos >= len(self._buffer):
            raise RedigoError(
                ErrorKind.UNABLE_TO_READ_FIRST_BYTE, cause=EOFError("end of buffer")
            )
        received = self._buffer[self._pos : self._pos + 1]
        if received != marker:
            raise RedigoError(
                ErrorKind.UNEXPECTED_FIRST_BYTE,
                context={
                    "expected": marker.decode("latin-1"),
                    "received": received.decode("latin-1"),
                },
            )
        self._pos += 1

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._buffer):
            self._pos = len(self._buffer)
            raise RedigoError(
                ErrorKind.UNABLE_TO_READ_BYTES, cause=EOFError("end of buffer")
            )
        data = self._buffer[self._pos : end]
        self._pos = end
        return data


def _get(cache: Cache, args: list[str]) -> bytes:
    try:
        return encoding.blob_string(cache.get(args[1]))
    except RedigoError as exc:
        if key_not_found(exc):
            return encoding.null()
        raise


def _set(cache: Cache, args: list[str]) -> bytes:
    cache.set(args[1], args[2])
    return encoding.null()


def _rpush(cache: Cache, args: list[str]) -> bytes:
    cache.rpush(args[1], *args[2:])
    return encoding.null()


def _lpush(cache: Cache, args: list[str]) -> bytes:
    cache.lpush(args[1], *args[2:])
    return encoding.null()


def _popper(pop: Callable[[Cache, str], str]) -> Callable[[Cache, list[str]], bytes]:
    def handler(cache: Cache, args: list[str]) -> bytes:
        try:
            return encoding.blob_string(pop(cache, args[1]))
        except RedigoError as exc:
            if key_not_found(exc):
                return encoding.null()
            raise

    return handler


def _llen(cache: Cache, args: list[str]) -> bytes:
    return encoding.integer(cache.llen(args[1]))


def _lindex(cache: Cache, args: list[str]) -> bytes:
    try:
        index = _to_int(
            args[2].encode("utf-8"), ErrorKind.UNABLE_TO_CONVERT_INDEX_TO_INT
        )
    except RedigoError as exc:
        raise RedigoError(
            ErrorKind.UNABLE_TO_CONVERT_INDEX_TO_INT,
            cause=exc.cause,
            context={"provided": args[2]},
        ) from None
    try:
        return encoding.blob_string(cache.lindex(args[1], index))
    except RedigoError as exc:
        if key_not_found(exc) or index_out_of_range(exc):
            return encoding.null()
        raise


def _del(cache: Cache, args: list[str]) -> bytes:
    cache.delete(args[1])
    return encoding.null()


def _ping(cache: Cache, args: list[str]) -> bytes:
    return encoding.pong()


# name -> (argument count, whether the count is exact, handler)
_COMMANDS: dict[str, tuple[int, bool, Callable[[Cache, list[str]], bytes]]] = {
    "GET": (2, True, _get),
    "SET": (3, True, _set),
    "RPUSH": (3, False, _rpush),
    "RPOP": (2, True, _popper(Cache.rpop)),
    "LPUSH": (3, False, _lpush),
    "LPOP": (2, True, _popper(Cache.lpop)),
    "LLEN": (2, True, _llen),
    "LINDEX": (3, True, _lindex),
    "DEL": (2, True, _del),
    "PING": (1, False, _ping),
}


def select_command(args: list[str]) -> Command:
    """Turn a parsed request into a callable run against a cache.

    Raises for unknown commands and for a wrong number of arguments.
    """
    if not args:
        raise RedigoError(
            ErrorKind.INSUFFICIENT_LENGTH,
            context={"expected": ">= 1", "obtained": "0"},
        )
    name = args[0]
    spec: Optional[tuple[int, bool, Callable[[Cache, list[str]], bytes]]]
    spec = _COMMANDS.get(name)
    if spec is None:
        raise RedigoError(ErrorKind.FUNCTION_NOT_FOUND, context={"function": name})
    arity, exact, handler = spec
    if (exact and len(args) != arity) or (not exact and len(args) < arity):
        raise RedigoError(
            ErrorKind.INSUFFICIENT_LENGTH,
            context={
                "expected": str(arity) if exact else f">= {arity}",
                "obtained": str(len(args)),
            },
        )
    return functools.partial(handler, args=list(args))