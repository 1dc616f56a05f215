import asyncio
import gc
import uuid

from goalfund.core import locks
from goalfund.core.locks import get_user_lock


async def test_same_user_shares_a_lock_while_it_is_held():
    user_id = uuid.uuid4()
    lock = get_user_lock(user_id)
    async with lock:
        assert get_user_lock(user_id) is lock
        assert get_user_lock(uuid.uuid4()) is not lock


async def test_released_locks_are_dropped():
    for _ in range(100):
        async with get_user_lock(uuid.uuid4()):
            pass
    gc.collect()
    assert len(locks._user_locks) == 0


async def test_lock_kept_while_a_waiter_is_queued():
    user_id = uuid.uuid4()
    order = []

    async def worker(name):
        async with get_user_lock(user_id):
            order.append(name)
            await asyncio.sleep(0)

    await asyncio.gather(worker("a"), worker("b"))
    assert order == ["a", "b"]
    gc.collect()
    assert user_id not in locks._user_locks
