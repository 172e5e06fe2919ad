"""Plugin startup: control thread, init handoff, then the pruning loop."""

from __future__ import annotations

import asyncio
import threading
from typing import TextIO

import httpx
from loguru import logger

from lnprune.config.schema import Settings
from lnprune.control.dispatcher import ControlDispatcher
from lnprune.handoff import InitChannel, InitHandoff
from lnprune.pruning.bitcoind import BitcoindClient, BitcoinInfo, PruneRequestTemplate
from lnprune.pruning.scheduler import MaintenanceScheduler
from lnprune.rpc.backend import BackendTransport
from lnprune.utils.exceptions import ConnectionClosedError


def start_control_thread(dispatcher: ControlDispatcher, closed: asyncio.Event) -> threading.Thread:
    """Run the dispatcher on its own thread; `closed` is set when it stops."""
    loop = asyncio.get_running_loop()

    def _target() -> None:
        try:
            dispatcher.run()
        except Exception as exc:
            logger.exception("Control loop failed: {}", exc)
        finally:
            if not loop.is_closed():
                loop.call_soon_threadsafe(closed.set)

    thread = threading.Thread(target=_target, daemon=True, name="lnprune-control")
    thread.start()
    return thread


async def fetch_bitcoin_info(backend: BackendTransport) -> BitcoinInfo:
    result = await backend.call("listconfigs", [], id=0)
    info = BitcoinInfo.from_listconfigs(result)
    logger.info("bitcoind rpc at {} (user {})", info.url, info.bitcoin_rpcuser)
    return info


async def prune_forever(
    settings: Settings,
    handoff: InitHandoff,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """
    Wait for init, connect and prune on schedule.

    Everything up to the first scheduler tick is fatal on failure; after
    that, failures stay inside their tick.
    """
    init_info = await handoff.wait_for_info(settings.handoff_poll_interval)
    backend = await BackendTransport.open(init_info.socket_path, read_size=settings.backend_read_size)
    bitcoind: BitcoindClient | None = None
    try:
        bitcoin_info = await fetch_bitcoin_info(backend)
        template = PruneRequestTemplate.from_bitcoin_info(bitcoin_info)
        bitcoind = BitcoindClient(
            template,
            timeout=settings.http_timeout,
            proxy=bitcoin_info.proxy_url,
            transport=transport,
        )
        scheduler = MaintenanceScheduler(
            backend,
            bitcoind,
            interval=init_info.pruning_interval,
            retention=settings.retention_blocks,
        )
        logger.info(
            "Pruning every {}s, keeping {} blocks",
            init_info.pruning_interval,
            settings.retention_blocks,
        )
        await scheduler.run()
    finally:
        if bitcoind is not None:
            await bitcoind.aclose()
        await backend.close()


async def run_plugin(
    settings: Settings,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """Run until lightningd closes the control channel or setup fails."""
    channel = InitChannel()
    closed = asyncio.Event()
    start_control_thread(ControlDispatcher(channel, stdin=stdin, stdout=stdout), closed)

    pruning = asyncio.create_task(prune_forever(settings, InitHandoff(channel), transport=transport))
    control = asyncio.create_task(closed.wait())
    done, _ = await asyncio.wait({pruning, control}, return_when=asyncio.FIRST_COMPLETED)
    if pruning in done:
        control.cancel()
        await pruning
        return
    pruning.cancel()
    try:
        await pruning
    except asyncio.CancelledError:
        pass
    raise ConnectionClosedError("lightningd closed the plugin channel")
