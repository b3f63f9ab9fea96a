"""TCP server that accepts clients and hands them to a pool of workers."""

from __future__ import annotations

import logging
import queue
import signal
import socket
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

from redigo.cache import Cache
from redigo.errors import ErrorKind, RedigoError
from redigo.parser import RespParser
from redigo.worker import Worker

logger = logging.getLogger(__name__)

_ACCEPT_POLL = 0.1
_STOP_POLL = 0.5


@dataclass(frozen=True)
class Configuration:
    """Settings for a server; times are in seconds, sizes in bytes."""

    ip_address: str = "127.0.0.1"
    port: int = 6543
    worker_amount: int = 10
    keep_alive: float = 15
    message_size_limit: int = 10240
    shutdown_tolerance: float = 15


class Server:
    """Listens for clients and runs the workers that answer them.

    The listener is bound and the workers started on construction. ``run``
    accepts connections until ``stop`` is called or SIGINT/SIGTERM arrives,
    then shuts the workers down within the configured tolerance.
    """

    def __init__(self, config: Configuration) -> None:
        self.config = config
        try:
            listener = socket.create_server((config.ip_address, config.port))
        except OSError as exc:
            raise RedigoError(ErrorKind.UNABLE_TO_CREATE_SERVER, cause=exc) from exc
        listener.settimeout(_ACCEPT_POLL)
        self._listener = listener
        logger.info(
            "Initializing Server",
            extra={"ip": config.ip_address, "port": self.address[1]},
        )

        self.cache = Cache()
        self._connections: "queue.Queue[Optional[Any]]" = queue.Queue()
        self._stop = threading.Event()
        self._closing = threading.Event()
        self._workers: list[Worker] = []
        self._threads: list[threading.Thread] = []
        for worker_id in range(config.worker_amount):
            worker = Worker(
                self.cache,
                self._connections,
                config.keep_alive,
                worker_id,
                RespParser(None, config.message_size_limit),
            )
            thread = threading.Thread(
                target=worker.run, name=f"redigo-worker-{worker_id}", daemon=True
            )
            self._workers.append(worker)
            self._threads.append(thread)
            thread.start()

    @property
    def address(self) -> tuple[str, int]:
        """The host and port the server listens on."""
        host, port = self._listener.getsockname()[:2]
        return host, port

    def _accept(self) -> None:
        while not self._closing.is_set():
            try:
                conn, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._closing.is_set():
                    break
                logger.error(
                    "An error occurred while accepting a new connection: %s", exc
                )
                continue
            self._connections.put(conn)
        logger.info("Listener closed")

    def stop(self) -> None:
        """Ask a running server to shut down; safe from any thread."""
        self._stop.set()

    def _on_signal(self, signum: int, frame: Any) -> None:
        self.stop()

    def run(self) -> None:
        """Serve until stopped, then shut the workers down."""
        previous: dict[int, Any] = {}
        if threading.current_thread() is threading.main_thread():
            for signum in (signal.SIGINT, signal.SIGTERM):
                previous[signum] = signal.signal(signum, self._on_signal)

        acceptor = threading.Thread(target=self._accept, name="redigo-accept", daemon=True)
        acceptor.start()
        try:
            while not self._stop.wait(_STOP_POLL):
                pass
        finally:
            self._shutdown(acceptor)
            for signum, handler in previous.items():
                signal.signal(signum, handler)

    def _shutdown(self, acceptor: threading.Thread) -> None:
        logger.info(
            "Shutting down server, signalling workers",
            extra={"shutdown_tolerance": self.config.shutdown_tolerance},
        )
        for worker in self._workers:
            worker.notify()
        self._closing.set()
        self._listener.close()
        acceptor.join()
        for _ in self._workers:
            self._connections.put(None)

        deadline = time.monotonic() + self.config.shutdown_tolerance + 1
        for thread in self._threads:
            thread.join(max(0.0, deadline - time.monotonic()))
        if any(thread.is_alive() for thread in self._threads):
            logger.error("Unable to close all workers, terminating server anyway")
        else:
            logger.info("All workers closed, terminating server")