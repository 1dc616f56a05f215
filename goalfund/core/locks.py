# goalfund/core/locks.py
import asyncio
import uuid
import weakref

# One lock per user serializes funding for that user while different users
# proceed in parallel. A lock lives only while someone holds or awaits it.
_user_locks: "weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock]" = weakref.WeakValueDictionary()


def get_user_lock(user_id: uuid.UUID) -> asyncio.Lock:
    lock = _user_locks.get(user_id)
    if lock is None:
        lock = asyncio.Lock()
        _user_locks[user_id] = lock
    return lock


def reset_user_locks() -> None:
    """Drop all locks (used when the event loop is replaced, e.g. in tests)"""
    _user_locks.clear()
