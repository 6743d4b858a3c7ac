"""
Per-key re-entrant locks.

Used to serialize payments per bill id and stock movements per stock id.
A key's lock exists only while some thread holds or waits for it.
"""
from __future__ import annotations

import threading
import weakref
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        entry = self._checkout(key)
        try:
            with entry.lock:
                yield
        finally:
            self._checkin(key, entry)

    @contextmanager
    def hold_many(self, keys: Iterable[str]) -> Iterator[None]:
        """Acquire every key's lock in sorted order; release in reverse."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.hold(key))
            yield


_REGISTRY: "weakref.WeakKeyDictionary[object, dict[str, KeyedLocks]]" = weakref.WeakKeyDictionary()
_REGISTRY_GUARD = threading.Lock()


def locks_for(owner: object, namespace: str) -> KeyedLocks:
    """
    Shared KeyedLocks per (owner, namespace), so two ledgers built over the
    same store serialize against each other.
    """
    with _REGISTRY_GUARD:
        spaces = _REGISTRY.get(owner)
        if spaces is None:
            spaces = _REGISTRY[owner] = {}
        kl = spaces.get(namespace)
        if kl is None:
            kl = spaces[namespace] = KeyedLocks()
        return kl
