"""Error kinds raised across the server, parser and client."""

from __future__ import annotations

import enum
import socket
from typing import Any


class ErrorKind(enum.Enum):
    """Every failure the package can report, with its code and messages.

    ``content`` describes the failure for logs; ``client_context`` is the
    text sent back to a client when the failure ends up in a response.
    """

    KEY_NOT_FOUND = (1, "Key not found in dictionary", "")
    INDEX_OUT_OF_RANGE = (2, "Index set is out of range", "")
    UNABLE_TO_READ_FIRST_BYTE = (3, "Unable to read first byte", "")
    UNABLE_TO_FIND_PATTERN = (4, "Unable to find byte pattern in byte stream", "")
    UNEXPECTED_FIRST_BYTE = (
        5,
        "First byte was different from expected",
        "Command malformed",
    )
    UNABLE_TO_DETERMINE_BULK_ARRAY_SIZE = (
        6,
        "Unable to determine the size of the incoming bulk array",
        "Command malformed",
    )
    UNABLE_TO_DETERMINE_RAW_STRING_SIZE = (
        7,
        "Unable to determine the size of the incoming raw string",
        "Command malformed",
    )
    UNABLE_TO_READ_BYTES = (
        8,
        "Unable to read the specified number of bytes",
        "Command malformed",
    )
    INSUFFICIENT_LENGTH = (9, "Insufficient length for command", "Command malformed")
    FUNCTION_NOT_FOUND = (
        10,
        "Function provided not found for current implementation",
        "Command not found",
    )
    UNABLE_TO_CONVERT_INDEX_TO_INT = (
        11,
        "Unable to convert the provided index to an integer",
        "",
    )
    NOT_NULL_FOUND_IN_PLACE_OF_NULL = (
        12,
        "Null-like stream processed with not null received "
        "(len of content is bigger than 2)",
        "",
    )
    ERROR_RECEIVED = (13, "Error received as a response", "")
    UNABLE_TO_CONVERT_LEN_TO_INT = (
        14,
        "Unable to convert the given response to an integer representing "
        "length of array",
        "",
    )
    UNABLE_TO_SEND_REQUEST = (16, "Unable to send request to miniredis server", "")
    MAX_SIZE_PER_CALL_EXCEEDED = (
        17,
        "Max size per call exceeded the marked threshold",
        "Call exceeded size allowed",
    )
    WRONG_TYPE = (
        18,
        "Operation against a key holding the wrong kind of value",
        "Operation against a key holding the wrong kind of value",
    )
    UNABLE_TO_CREATE_SERVER = (19, "Unable to create the redigo server", "")

    def __init__(self, code: int, content: str, client_context: str) -> None:
        self.code = code
        self.content = content
        self.client_context = client_context


class RedigoError(Exception):
    """An error of a known kind, with an optional cause and extra context."""

    def __init__(
        self,
        kind: ErrorKind,
        cause: BaseException | None = None,
        context: dict[str, str] | None = None,
    ) -> None:
        self.kind = kind
        self.cause = cause
        self.context: dict[str, str] = dict(context) if context else {}
        super().__init__(str(self))
        if cause is not None:
            self.__cause__ = cause

    @property
    def code(self) -> int:
        return self.kind.code

    @property
    def content(self) -> str:
        return self.kind.content

    @property
    def client_context(self) -> str:
        return self.kind.client_context

    def __str__(self) -> str:
        return (
            f"{{CODE: {self.kind.code} -- CONTENT: {self.kind.content} -- "
            f"FROM: {self.cause!r} -- INFORMATION: {self.context}}}"
        )

    def as_dict(self) -> dict[str, Any]:
        """Structured form suitable for logging."""
        return {
            "ERROR": self.kind.content,
            "FROM": None if self.cause is None else str(self.cause),
            "CODE": self.kind.code,
            "INFORMATION": dict(self.context),
        }


def _has_kind(error: BaseException | None, *kinds: ErrorKind) -> bool:
    return isinstance(error, RedigoError) and error.kind in kinds


def connection_related(error: BaseException | None) -> bool:
    """True when the error means the peer went away or timed out."""
    return isinstance(error, (EOFError, ConnectionError, TimeoutError, socket.timeout))


def index_out_of_range(error: BaseException | None) -> bool:
    return _has_kind(error, ErrorKind.INDEX_OUT_OF_RANGE)


def key_not_found(error: BaseException | None) -> bool:
    return _has_kind(error, ErrorKind.KEY_NOT_FOUND)


def exceeded_max_size(error: BaseException | None) -> bool:
    return _has_kind(error, ErrorKind.MAX_SIZE_PER_CALL_EXCEEDED)


def buffer_exhausted(error: BaseException | None) -> bool:
    """True when parsing stopped only because the input ran out."""
    return _has_kind(
        error,
        ErrorKind.UNABLE_TO_READ_FIRST_BYTE,
        ErrorKind.UNABLE_TO_FIND_PATTERN,
        ErrorKind.UNABLE_TO_READ_BYTES,
    )