"""Command line entry point that starts a redigo server."""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from typing import Optional, Sequence

from redigo.errors import RedigoError
from redigo.server import Configuration, Server

_IPV4 = re.compile(
    r"((25[0-5]|2[0-4][0-9]|1[0-9]{2}|[1-9]?[0-9])\.){3}"
    r"(25[0-5]|2[0-4][0-9]|1[0-9]{2}|[1-9]?[0-9])"
)
_MAX_PORT = 65535
_EXTRA_FIELDS = ("worker_id", "client", "shutdown_tolerance", "ip", "port")


def is_valid_ipv4(address: str) -> bool:
    """True for a dotted-quad IPv4 address without leading zeros."""
    return _IPV4.fullmatch(address) is not None


def _non_negative(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid value {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid value {text!r}")
    return value


class _JsonFormatter(logging.Formatter):
    def __init__(self, ip_address: str, port: int) -> None:
        super().__init__()
        self._ip_address = ip_address
        self._port = port

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "msg": record.getMessage(),
            "[REDIGO]": "",
            "IP": self._ip_address,
            "PORT": self._port,
        }
        for name in _EXTRA_FIELDS:
            if name in record.__dict__:
                entry[name.upper()] = record.__dict__[name]
        return json.dumps(entry, default=str)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="redigo-server", description="Run a redigo server.")
    parser.add_argument("-ip", "--ip", default="127.0.0.1", help="Binding IP address for server.")
    parser.add_argument("-port", "--port", type=_non_negative, default=6543, help="Binding port for server.")
    parser.add_argument(
        "-message_size",
        "--message_size",
        type=int,
        default=10240,
        help="Limit in size (bytes) for a single message delivered to the server.",
    )
    parser.add_argument(
        "-worker_amount",
        "--worker_amount",
        type=_non_negative,
        default=10,
        help="Number of workers to initialize.",
    )
    parser.add_argument(
        "-keep_alive",
        "--keep_alive",
        type=int,
        default=15,
        help="Time (in seconds) to keep a connection open if no message is received.",
    )
    parser.add_argument(
        "-shutdown",
        "--shutdown",
        type=int,
        default=15,
        help="Time (in seconds) given to workers when gracefully shutting down the server.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Validate the options, start the server and serve until interrupted."""
    args = _parser().parse_args(argv)

    if not is_valid_ipv4(args.ip):
        print(f"Invalid IP address - {args.ip}")
        return 1
    if args.port > _MAX_PORT:
        print(
            f"Unable to convert given port number ({args.port}) "
            f"to the corresponding range 0 - {_MAX_PORT}"
        )
        return 1

    config = Configuration(
        ip_address=args.ip,
        port=args.port,
        worker_amount=args.worker_amount,
        keep_alive=args.keep_alive,
        message_size_limit=args.message_size,
        shutdown_tolerance=args.shutdown,
    )

    package_logger = logging.getLogger("redigo")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter(args.ip, args.port))
    previous_level = package_logger.level
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
    try:
        try:
            server = Server(config)
        except RedigoError as exc:
            print(f"Fatal error occurred - {exc}")
            return 1
        server.run()
    finally:
        package_logger.removeHandler(handler)
        package_logger.setLevel(previous_level)
    return 0


if __name__ == "__main__":
    sys.exit(main())