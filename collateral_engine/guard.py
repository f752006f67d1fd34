"""Per-operation re-entrancy guard.

An operation on a participant's position runs inside ``guard.enter(...)``:

* a nested entry on the same thread (for instance from a ledger callback
  fired during a transfer) raises ``ReentrantCall``;
* another thread working on the same participant waits for the lock;
* the in-progress mark is always cleared when the block exits.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from .errors import ReentrantCall

logger = logging.getLogger(__name__)


class _ParticipantLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class OperationGuard:
    def __init__(self) -> None:
        self._local = threading.local()
        # Entries live only while some thread holds or waits on them.
        self._locks: dict[str, _ParticipantLock] = {}
        self._locks_guard = threading.Lock()

    def _acquire(self, participant: str) -> _ParticipantLock:
        with self._locks_guard:
            entry = self._locks.get(participant)
            if entry is None:
                entry = self._locks[participant] = _ParticipantLock()
            entry.users += 1
        entry.lock.acquire()
        return entry

    def _release(self, participant: str, entry: _ParticipantLock) -> None:
        entry.lock.release()
        with self._locks_guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[participant]

    @property
    def tracked_participants(self) -> int:
        """Number of participants with a lock currently held or awaited."""
        return len(self._locks)

    @property
    def in_progress(self) -> bool:
        """True while the current thread is inside a guarded operation."""
        return getattr(self._local, "operation", None) is not None

    @contextmanager
    def enter(self, participant: str, operation: str = "") -> Iterator[None]:
        current = getattr(self._local, "operation", None)
        if current is not None:
            logger.warning(
                "Rejected nested %s for %s during %s", operation, participant, current
            )
            raise ReentrantCall(
                f"{operation or 'operation'} on {participant} entered while "
                f"{current} is in progress"
            )

        entry = self._acquire(participant)
        self._local.operation = f"{operation}({participant})"
        try:
            yield
        finally:
            self._local.operation = None
            self._release(participant, entry)
