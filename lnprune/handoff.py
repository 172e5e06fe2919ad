"""One-shot handoff of init data from the control thread to the asyncio side."""

from __future__ import annotations

import asyncio
import queue
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from lnprune.utils.exceptions import HandoffClosedError


@dataclass(frozen=True, slots=True)
class InitInfo:
    """What the plugin needs from lightningd's init call."""

    socket_path: Path
    pruning_interval: int


class InitChannel:
    """Single-slot channel; the receiving side closes it once it has resolved."""

    def __init__(self) -> None:
        self._slot: queue.Queue[InitInfo] = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, info: InitInfo) -> None:
        with self._lock:
            if self._closed:
                raise HandoffClosedError("init info already received")
            try:
                self._slot.put_nowait(info)
            except queue.Full as exc:
                raise HandoffClosedError("init info already pending") from exc

    def try_receive(self) -> InitInfo | None:
        try:
            return self._slot.get_nowait()
        except queue.Empty:
            return None

    def close(self) -> None:
        with self._lock:
            self._closed = True


class AsyncRWLock:
    """Readers-writer lock for coroutines on one event loop."""

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True, slots=True)
class Waiting:
    channel: InitChannel


@dataclass(frozen=True, slots=True)
class Resolved:
    info: InitInfo


class InitHandoff:
    """
    Waiting(channel) -> Resolved(info), exactly once.

    Many coroutines may wait concurrently. Each poll holds the read lock;
    the one that receives the value drops it before taking the write lock,
    so the transition is the only mutation and cannot deadlock on itself.
    """

    def __init__(self, channel: InitChannel):
        self._state: Waiting | Resolved = Waiting(channel)
        self._lock = AsyncRWLock()

    @property
    def resolved(self) -> bool:
        return isinstance(self._state, Resolved)

    async def wait_for_info(self, poll_interval: float = 0.1) -> InitInfo:
        while True:
            received: InitInfo | None = None
            async with self._lock.read():
                state = self._state
                if isinstance(state, Resolved):
                    return state.info
                received = state.channel.try_receive()
            if received is not None:
                async with self._lock.write():
                    state = self._state
                    if isinstance(state, Waiting):
                        state.channel.close()
                        self._state = Resolved(received)
                    return self._state.info
            await asyncio.sleep(poll_interval)
