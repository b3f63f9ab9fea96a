"""Interactive command line client for a redigo server."""

from __future__ import annotations

import argparse
import re
import socket
import sys
from typing import Any, Iterable, Optional, Sequence, TextIO

from redigo.client import Client
from redigo.errors import RedigoError, connection_related
from redigo.server_main import is_valid_ipv4

_PROMPT = "> "
_MAX_PORT = 65535
_INDEX = re.compile(r"[+-]?[0-9]+")

# Commands with an exact number of words, and with a minimum number.
_EXACT_ARITY = {"GET": 2, "SET": 3, "RPOP": 2, "LPOP": 2, "LLEN": 2, "LINDEX": 3, "DEL": 2}
_MIN_ARITY = {"RPUSH": 3, "LPUSH": 3}


class _UsageError(Exception):
    """A command line that cannot be sent to the server."""


def _run(client: Client, name: str, words: list[str]) -> Any:
    if name in _EXACT_ARITY and len(words) != _EXACT_ARITY[name]:
        raise _UsageError(f"Incorrect length for command '{name}' - {len(words)}")
    if name in _MIN_ARITY and len(words) < _MIN_ARITY[name]:
        raise _UsageError(f"Insufficient length for command '{name}' - {len(words)}")

    if name == "GET":
        return client.get(words[1])
    if name == "SET":
        return client.set(words[1], words[2])
    if name == "RPUSH":
        return client.rpush(words[1], *words[2:])
    if name == "RPOP":
        return client.rpop(words[1])
    if name == "LPUSH":
        return client.lpush(words[1], *words[2:])
    if name == "LPOP":
        return client.lpop(words[1])
    if name == "LLEN":
        return client.llen(words[1])
    if name == "LINDEX":
        if _INDEX.fullmatch(words[2]) is None:
            raise _UsageError(f"Could not convert index to integer - {words[2]!r}")
        return client.lindex(words[1], int(words[2]))
    if name == "DEL":
        return client.delete(words[1])
    if name == "PING":
        return client.ping()
    raise _UsageError("Command specified not found")


def repl(client: Client, lines: Iterable[str], out: Optional[TextIO] = None) -> None:
    """Read commands from ``lines``, run them and write results to ``out``.

    Stops at ``EXIT``, at the end of input, or when the server closes the
    connection.
    """
    out = sys.stdout if out is None else out
    source = iter(lines)
    while True:
        out.write(_PROMPT)
        out.flush()
        line = next(source, None)
        if line is None:
            break
        words = [word for word in line.removesuffix("\n").split(" ") if word]
        if not words:
            continue
        name = words[0].upper()
        if name == "EXIT":
            break
        try:
            result = _run(client, name, words)
        except _UsageError as exc:
            out.write(f"* {exc}\n")
            continue
        except (RedigoError, EOFError, OSError) as exc:
            if connection_related(exc):
                out.write("! Connection closed by the server\n")
                break
            out.write(f"* Error occurred while processing command - {exc}\n")
            continue
        out.write("- OK\n" if result is None else f"- {result}\n")


def _port(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid value {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid value {text!r}")
    return value


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Connect to a server and run the interactive prompt on standard input."""
    parser = argparse.ArgumentParser(prog="redigo-cli", description="Talk to a redigo server.")
    parser.add_argument("-ip", "--ip", default="127.0.0.1", help="IP address to connect to.")
    parser.add_argument("-port", "--port", type=_port, default=6543, help="Server port to connect to.")
    args = parser.parse_args(argv)

    if not is_valid_ipv4(args.ip):
        print(f"Invalid IP address - {args.ip}")
        return 1
    if args.port > _MAX_PORT:
        print(
            f"Unable to convert given port number ({args.port}) "
            f"to the corresponding range 0 - {_MAX_PORT}"
        )
        return 1

    try:
        conn = socket.create_connection((args.ip, args.port))
    except OSError as exc:
        print(f"Fatal error occurred! {exc}")
        return 1

    with conn:
        print("--------------")
        print("  REDIGO CLI  ")
        print("--------------")
        print()
        repl(Client(conn), sys.stdin, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())