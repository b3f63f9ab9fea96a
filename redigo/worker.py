"""Workers that serve client connections against the shared cache."""

from __future__ import annotations

import contextlib
import logging
import queue
import threading
from typing import Any, Optional

from redigo import encoding
from redigo.cache import Cache
from redigo.errors import RedigoError, connection_related, exceeded_max_size
from redigo.parser import Command, RespParser

logger = logging.getLogger(__name__)


def _peer_name(conn: Any) -> str:
    try:
        return str(conn.getpeername())
    except OSError:
        return "unknown"


class Worker:
    """Takes connections from a queue and answers each client until it leaves.

    A worker stays with one connection until the client closes it, the
    keep-alive timeout expires, the request is malformed, or the worker is
    notified to shut down. ``None`` on the queue tells the worker to stop.
    """

    def __init__(
        self,
        cache: Cache,
        connections: "queue.Queue[Optional[Any]]",
        timeout: float,
        worker_id: int,
        parser: RespParser,
    ) -> None:
        self.cache = cache
        self.connections = connections
        self.timeout = timeout
        self.worker_id = worker_id
        self.parser = parser
        self._notified = threading.Event()

    def notify(self) -> None:
        """Ask the worker to drop its current connection at the next chance."""
        self._notified.set()

    def _log_extra(self, peer: str) -> dict[str, Any]:
        return {"worker_id": self.worker_id, "client": peer}

    def _send(self, conn: Any, data: bytes, peer: str) -> bool:
        try:
            conn.sendall(data)
        except OSError as exc:
            logger.error(
                "An error occurred while sending a response to the client: %s",
                exc,
                extra=self._log_extra(peer),
            )
            return False
        return True

    def _execute(self, command: Command, peer: str) -> bytes:
        with self.cache:
            try:
                return command(self.cache)
            except Exception as exc:  # every failure becomes an error reply
                logger.error(
                    "An error occurred while executing client's command: %s",
                    exc,
                    extra=self._log_extra(peer),
                )
                return encoding.error(exc)

    def handle_connection(self, conn: Any) -> None:
        """Answer one client until the connection ends; always closes it."""
        with contextlib.closing(conn):
            peer = _peer_name(conn)
            extra = self._log_extra(peer)
            try:
                conn.settimeout(self.timeout)
            except (OSError, ValueError) as exc:
                logger.error("Unable to set connection timeout: %s", exc, extra=extra)
                return
            self.parser.new_connection(conn)

            while True:
                if self._notified.is_set():
                    self._notified.clear()
                    logger.debug(
                        "Starting shutdown for worker, finishing any active connections",
                        extra=extra,
                    )
                    return

                try:
                    self.parser.read()
                except RedigoError as exc:
                    if exceeded_max_size(exc):
                        self._send(conn, encoding.error(exc), peer)
                        continue
                    logger.error("Unable to read from client: %s", exc, extra=extra)
                    return
                except (EOFError, OSError) as exc:
                    if connection_related(exc):
                        logger.debug("The connection was closed: %s", exc, extra=extra)
                    else:
                        logger.error("Unable to read from client: %s", exc, extra=extra)
                    return

                try:
                    commands = self.parser.parse_command()
                except RedigoError as exc:
                    logger.error(
                        "An error occurred while parsing the command: %s",
                        exc,
                        extra=extra,
                    )
                    self._send(conn, encoding.error(exc), peer)
                    return

                response = b"".join(self._execute(command, peer) for command in commands)
                if response and not self._send(conn, response, peer):
                    return

                try:
                    conn.settimeout(self.timeout)
                except OSError:
                    return

    def run(self) -> None:
        """Serve connections from the queue until ``None`` arrives."""
        logger.info("Starting worker", extra={"worker_id": self.worker_id})
        while True:
            conn = self.connections.get()
            if conn is None:
                break
            self.handle_connection(conn)
        logger.info("Worker stopped", extra={"worker_id": self.worker_id})