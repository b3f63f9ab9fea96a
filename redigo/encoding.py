"""Encoding of values into RESP3 wire bytes."""

from __future__ import annotations

from redigo.errors import RedigoError


def blob_string(value: str) -> bytes:
    data = value.encode("utf-8")
    return b"$%d\r\n%s\r\n" % (len(data), data)


def integer(value: int) -> bytes:
    return b":%d\r\n" % value


def null() -> bytes:
    return b"_\r\n"


def error(err: BaseException) -> bytes:
    """Encode an error; only package errors reveal their client context."""
    if not isinstance(err, RedigoError):
        return b"-Internal Server Error\r\n"
    return b"-" + err.client_context.encode("utf-8") + b"\r\n"


def pong() -> bytes:
    return b"$4\r\nPONG\r\n"