"""Per-session mutual exclusion."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class SessionLockRegistry:
    """One lock per session id so operations on a session never interleave.

    Locks for different sessions are independent.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, session_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        with self.lock_for(session_id):
            yield

    def discard(self, session_id: str) -> None:
        with self._guard:
            self._locks.pop(session_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
