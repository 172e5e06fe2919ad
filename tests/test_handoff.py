import asyncio
from pathlib import Path

import pytest

from lnprune.handoff import AsyncRWLock, InitChannel, InitHandoff, InitInfo
from lnprune.utils.exceptions import HandoffClosedError

INFO = InitInfo(socket_path=Path("/tmp/ln/lightning-rpc"), pruning_interval=60)


def test_channel_holds_one_value():
    channel = InitChannel()
    assert channel.try_receive() is None
    channel.send(INFO)
    with pytest.raises(HandoffClosedError):
        channel.send(INFO)
    assert channel.try_receive() == INFO
    assert channel.try_receive() is None


def test_closed_channel_rejects_send():
    channel = InitChannel()
    channel.close()
    assert channel.closed
    with pytest.raises(HandoffClosedError):
        channel.send(INFO)


@pytest.mark.asyncio
async def test_wait_resolves_and_closes_channel():
    channel = InitChannel()
    handoff = InitHandoff(channel)
    channel.send(INFO)
    assert await handoff.wait_for_info(poll_interval=0.01) == INFO
    assert handoff.resolved
    assert channel.closed
    with pytest.raises(HandoffClosedError):
        channel.send(INFO)
    # later callers get the cached value
    assert await handoff.wait_for_info(poll_interval=0.01) is await handoff.wait_for_info()


@pytest.mark.asyncio
async def test_concurrent_waiters_share_one_value():
    channel = InitChannel()
    handoff = InitHandoff(channel)
    waiters = [asyncio.create_task(handoff.wait_for_info(poll_interval=0.01)) for _ in range(8)]
    await asyncio.sleep(0.03)
    assert not any(w.done() for w in waiters)

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, channel.send, INFO)
    results = await asyncio.wait_for(asyncio.gather(*waiters), timeout=2)

    assert all(r is results[0] for r in results)
    assert results[0] == INFO


@pytest.mark.asyncio
async def test_rwlock_writer_excludes_readers():
    lock = AsyncRWLock()
    events = []

    async def reader(name):
        async with lock.read():
            events.append(f"{name}-in")
            await asyncio.sleep(0.02)
            events.append(f"{name}-out")

    async def writer():
        await asyncio.sleep(0.005)
        async with lock.write():
            events.append("w-in")
            events.append("w-out")

    await asyncio.gather(reader("r1"), reader("r2"), writer())
    assert events.index("w-in") > events.index("r1-out")
    assert events.index("w-in") > events.index("r2-out")
    assert events.index("r2-in") < events.index("r1-out")
