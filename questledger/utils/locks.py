"""
Per-member mutual exclusion for ledger writes.

All mutations for one member (progress updates, credits, bonuses) run while
holding that member's lock, so two workers in the same process never read
the same previous balance. Locks live in a weak registry and disappear once
no thread holds or waits on them. Cross-process safety is provided by the
optimistic version columns on Member and QuestProgress.
"""
import threading
import weakref
from contextlib import contextmanager


class MemberLock:
    """Re-entrant lock for one member id."""

    def __init__(self, member_id):
        self.member_id = member_id
        self._lock = threading.RLock()

    def acquire(self, timeout: float = -1) -> bool:
        return self._lock.acquire(timeout=timeout)

    def release(self) -> None:
        self._lock.release()

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._lock.release()
        return False

    def __repr__(self):
        return f'<MemberLock member={self.member_id}>'


_registry_guard = threading.Lock()
_locks = weakref.WeakValueDictionary()


def get_member_lock(member_id) -> MemberLock:
    """Return the lock for a member, creating it on first use."""
    with _registry_guard:
        lock = _locks.get(member_id)
        if lock is None:
            lock = MemberLock(member_id)
            _locks[member_id] = lock
        return lock


@contextmanager
def member_lock(member_id):
    """Hold the member's lock for the duration of the block."""
    lock = get_member_lock(member_id)
    with lock:
        yield lock
