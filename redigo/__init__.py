"""An in-memory key-value store: TCP server, client and interactive shell speaking a subset of RESP3."""

__version__ = "0.1.0"