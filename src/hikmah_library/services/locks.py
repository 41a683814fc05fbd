"""Per-book mutual exclusion for the borrowing lifecycle."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class BookLockRegistry:
    """
    Hands out one lock per book id.

    Borrow, return and renew of the same book run one at a time inside this
    process; operations on different books never wait for each other. The
    conditional claim in the store still guards against other processes.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, book_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(book_id)
            if lock is None:
                lock = self._locks[book_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, book_id: int) -> Iterator[None]:
        lock = self._lock_for(book_id)
        with lock:
            yield
