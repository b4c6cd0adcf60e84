from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Hashable, Iterator


class KeyedLocks:
    """A lazily created re-entrant lock per key.

    Several keys are always acquired in sorted order, so two callers locking
    the same pair of groups cannot deadlock. A thread already holding a key
    may take it again (payment confirmation holds the group while restoring).
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.RLock] = {}

    def _lock_for(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._lock_for(key))
            yield
