"""In-memory key store holding strings and lists."""

from __future__ import annotations

import threading
from collections import deque
from typing import Union

from redigo.errors import ErrorKind, RedigoError

_Value = Union[str, "deque[str]"]


class Cache:
    """A dictionary of strings and lists, guarded by a lock.

    The operations themselves do not lock; callers hold the cache with a
    ``with`` block while running a command against it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, _Value] = {}

    def __enter__(self) -> Cache:
        self._lock.acquire()
        return self

    def __exit__(self, *args: object) -> None:
        self._lock.release()

    def _lookup(self, key: str) -> _Value:
        try:
            return self._data[key]
        except KeyError:
            raise RedigoError(ErrorKind.KEY_NOT_FOUND, context={"key": key}) from None

    def _list(self, key: str) -> deque[str]:
        value = self._lookup(key)
        if not isinstance(value, deque):
            raise RedigoError(ErrorKind.WRONG_TYPE)
        return value

    def get(self, key: str) -> str:
        value = self._lookup(key)
        if not isinstance(value, str):
            raise RedigoError(ErrorKind.WRONG_TYPE)
        return value

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def rpush(self, key: str, *args: str) -> None:
        existing = self._data.get(key)
        if existing is None:
            self._data[key] = deque(args)
            return
        if not isinstance(existing, deque):
            raise RedigoError(ErrorKind.WRONG_TYPE)
        existing.extend(args)

    def lpush(self, key: str, *args: str) -> None:
        existing = self._data.get(key)
        if existing is None:
            self._data[key] = deque(reversed(args))
            return
        if not isinstance(existing, deque):
            raise RedigoError(ErrorKind.WRONG_TYPE)
        existing.extendleft(args)

    def _pop(self, key: str, from_left: bool) -> str:
        items = self._list(key)
        if not items:
            del self._data[key]
            raise RedigoError(ErrorKind.KEY_NOT_FOUND, context={"key": key})
        value = items.popleft() if from_left else items.pop()
        if not items:
            del self._data[key]
        return value

    def rpop(self, key: str) -> str:
        return self._pop(key, from_left=False)

    def lpop(self, key: str) -> str:
        return self._pop(key, from_left=True)

    def lindex(self, key: str, index: int) -> str:
        items = self._list(key)
        if index < 0 or index >= len(items):
            raise RedigoError(
                ErrorKind.INDEX_OUT_OF_RANGE, context={"index": str(index)}
            )
        return items[index]

    def llen(self, key: str) -> int:
        value = self._data.get(key)
        if not isinstance(value, deque):
            raise RedigoError(ErrorKind.WRONG_TYPE)
        return len(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)