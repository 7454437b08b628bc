"""Per-key locks serializing mutations of a word record or a user's queue."""
import logging
import threading
from contextlib import contextmanager

from vocab_srs.errors import ConcurrencyConflict

logger = logging.getLogger(__name__)

QUEUE = "__queue__"


def word_key(db_path: str, user_id: str, word_id: str) -> tuple:
    return (db_path, user_id, word_id)


def queue_key(db_path: str, user_id: str) -> tuple:
    return (db_path, user_id, QUEUE)


class KeyedLocks:
    """Registry of one lock per key, created on first use.

    Each entry counts the holders and waiters using it and is dropped once
    the count returns to zero, so the registry only grows with live keys.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: tuple) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: tuple) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: tuple, timeout: float):
        """Acquire every key's lock, in sorted order, for the duration of the block.

        Sorting gives all callers the same acquisition order, so two sessions
        sharing words cannot deadlock. Raises ConcurrencyConflict if any lock
        is not acquired within ``timeout`` seconds; locks already taken are
        released first.
        """
        acquired = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                if not lock.acquire(timeout=timeout):
                    self._checkin(key)
                    _, user_id, word_id = key
                    logger.warning("Lock timeout after %.1fs on %s/%s", timeout, user_id, word_id)
                    raise ConcurrencyConflict(
                        "Record is busy, retry later",
                        user_id=user_id,
                        word_id=None if word_id == QUEUE else word_id,
                    )
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)


registry = KeyedLocks()
