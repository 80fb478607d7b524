"""Per-key locks for serializing read-modify-write on products and batches.

Locks are always taken in sorted key order so two callers that need
overlapping key sets cannot deadlock each other. An entry lives only while
some caller holds or waits on it.
"""
import threading
from collections.abc import Hashable, Iterable, Iterator
from contextlib import contextmanager


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0  # holders + waiters


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _acquire(self, key: Hashable) -> None:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
        entry.lock.acquire()

    def _release(self, key: Hashable) -> None:
        with self._guard:
            entry = self._entries[key]
            entry.lock.release()
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, keys: Iterable[Hashable]) -> Iterator[None]:
        acquired: list[Hashable] = []
        try:
            for key in sorted(set(keys)):
                self._acquire(key)
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._release(key)


def product_keys(product_ids: Iterable[int]) -> list[tuple[str, int]]:
    return [("product", pid) for pid in product_ids]


def adjustment_key(adjustment_id: int) -> tuple[str, int]:
    return ("adjustment", adjustment_id)


ledger_locks = KeyedLocks()
