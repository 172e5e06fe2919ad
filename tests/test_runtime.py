"""Tests for plugin startup: handoff, backend bootstrap, control channel loss."""

import asyncio
import io
import json
import shutil
import tempfile
from pathlib import Path

import httpx
import pytest

from lnprune.config.schema import Settings
from lnprune.handoff import InitChannel, InitHandoff, InitInfo
from lnprune.pruning.scheduler import MaintenanceScheduler
from lnprune.runtime import prune_forever, run_plugin
from lnprune.utils.exceptions import ConnectionClosedError, TransportError

LISTCONFIGS = {
    "configs": {
        "bitcoin-rpcuser": {"value_str": "alice"},
        "bitcoin-rpcpassword": {"value_str": "hunter2"},
        "bitcoin-rpcport": {"value_int": 18443},
    }
}


class _Lightningd:
    """Minimal lightningd rpc socket: answers listconfigs and getinfo."""

    def __init__(self, blockheight: int):
        self.blockheight = blockheight
        self.requests: list[dict] = []

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        decoder = json.JSONDecoder()
        buffer = ""
        while True:
            chunk = await reader.read(4096)
            if not chunk:
                break
            buffer += chunk.decode()
            while buffer:
                try:
                    request, end = decoder.raw_decode(buffer)
                except json.JSONDecodeError:
                    break
                buffer = buffer[end:].lstrip()
                self.requests.append(request)
                writer.write(json.dumps(self.reply(request)).encode() + b"\n\n")
                await writer.drain()
        writer.close()

    def reply(self, request: dict) -> dict:
        if request["method"] == "listconfigs":
            result = LISTCONFIGS
        else:
            result = {"id": "02abc", "blockheight": self.blockheight}
        return {"jsonrpc": "2.0", "id": request["id"], "result": result}


@pytest.fixture
def socket_dir():
    # unix socket paths have a short length limit, so avoid deep pytest tmp dirs
    path = Path(tempfile.mkdtemp(prefix="lnp"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.mark.requires_unix_socket
@pytest.mark.asyncio
async def test_prune_forever_bootstraps_and_prunes(socket_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    lightningd = _Lightningd(blockheight=1000)
    server = await asyncio.start_unix_server(lightningd.handle, path=str(socket_dir / "lightning-rpc"))
    bitcoind_requests: list[httpx.Request] = []

    def bitcoind(request: httpx.Request) -> httpx.Response:
        bitcoind_requests.append(request)
        return httpx.Response(200, json={"result": 899, "error": None, "id": 1})

    async def one_tick(self: MaintenanceScheduler, *, ticks=None) -> None:
        await self.tick()

    monkeypatch.setattr(MaintenanceScheduler, "run", one_tick)

    channel = InitChannel()
    channel.send(InitInfo(socket_path=socket_dir / "lightning-rpc", pruning_interval=60))
    settings = Settings(retention_blocks=100, handoff_poll_interval=0.01)
    try:
        await asyncio.wait_for(
            prune_forever(settings, InitHandoff(channel), transport=httpx.MockTransport(bitcoind)),
            timeout=5,
        )
    finally:
        server.close()
        await server.wait_closed()

    assert [r["method"] for r in lightningd.requests] == ["listconfigs", "getinfo"]
    assert lightningd.requests[0]["id"] == 0
    assert str(bitcoind_requests[0].url) == "http://127.0.0.1:18443/"
    assert json.loads(bitcoind_requests[0].content)["params"] == [899]


@pytest.mark.requires_unix_socket
@pytest.mark.asyncio
async def test_prune_forever_fails_without_socket(socket_dir: Path) -> None:
    channel = InitChannel()
    channel.send(InitInfo(socket_path=socket_dir / "missing-rpc", pruning_interval=60))
    with pytest.raises(TransportError):
        await prune_forever(Settings(handoff_poll_interval=0.01), InitHandoff(channel))


@pytest.mark.asyncio
async def test_run_plugin_stops_when_control_channel_closes() -> None:
    """EOF on stdin before init ends the plugin."""
    stdout = io.StringIO()
    with pytest.raises(ConnectionClosedError):
        await asyncio.wait_for(
            run_plugin(Settings(handoff_poll_interval=0.01), stdin=io.StringIO(""), stdout=stdout),
            timeout=5,
        )
    assert stdout.getvalue() == ""


@pytest.mark.asyncio
async def test_run_plugin_answers_getmanifest_before_closing() -> None:
    stdin = io.StringIO('{"jsonrpc": "2.0", "id": 1, "method": "getmanifest", "params": {}}\n\n')
    stdout = io.StringIO()
    with pytest.raises(ConnectionClosedError):
        await asyncio.wait_for(
            run_plugin(Settings(handoff_poll_interval=0.01), stdin=stdin, stdout=stdout),
            timeout=5,
        )
    reply = json.loads(stdout.getvalue())
    assert reply["id"] == 1
    assert reply["result"]["options"][0]["name"] == "pruning-interval"
