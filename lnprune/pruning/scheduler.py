"""Periodic pruning: read lightningd's block height, prune bitcoind behind it."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from lnprune.rpc.backend import BackendTransport
from lnprune.utils.exceptions import (
    LnpruneError,
    MalformedStatusError,
    TemplateError,
    classify_exception,
    sanitize_error_message,
)

from .bitcoind import BitcoindClient

STATUS_METHOD = "getinfo"


def compute_prune_target(height: int, retention: int) -> int | None:
    """Highest block bitcoind may prune, or None while the chain is shorter than the retention."""
    if height <= retention:
        return None
    return height - retention - 1


def parse_blockheight(status: Any) -> int:
    if not isinstance(status, dict):
        raise MalformedStatusError("getinfo result is not an object", status)
    height = status.get("blockheight")
    if isinstance(height, bool) or not isinstance(height, int) or height < 0:
        raise MalformedStatusError(f"invalid blockheight: {height!r}", status)
    return height


class MaintenanceScheduler:
    """Fixed-rate loop; one failed tick never stops the next one."""

    def __init__(
        self,
        backend: BackendTransport,
        bitcoind: BitcoindClient,
        *,
        interval: float,
        retention: int,
    ):
        self.backend = backend
        self.bitcoind = bitcoind
        self.interval = interval
        self.retention = retention

    async def tick(self) -> int | None:
        """Run one check; return the pruning target when a prune was requested."""
        status = await self.backend.call(STATUS_METHOD, [])
        height = parse_blockheight(status)
        target = compute_prune_target(height, self.retention)
        if target is None:
            logger.debug("Height {} within retention {}, nothing to prune", height, self.retention)
            return None
        logger.info("Height {}: pruning bitcoind below {}", height, target)
        await self.bitcoind.prune(target)
        return target

    async def run(self, *, ticks: int | None = None) -> None:
        """Tick every `interval` seconds, the first one a full interval from now."""
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        count = 0
        while ticks is None or count < ticks:
            deadline += self.interval
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            if loop.time() > deadline + self.interval:
                # fell behind; do not fire the missed ticks in a burst
                deadline = loop.time()
            count += 1
            try:
                await self.tick()
            except TemplateError:
                raise
            except (LnpruneError, httpx.HTTPError, OSError) as exc:
                code, category, _ = classify_exception(exc)
                logger.error(
                    "Pruning tick failed [{} {}]: {}",
                    code,
                    category.value,
                    sanitize_error_message(str(exc)),
                )
