"""JSON-RPC client for the lightningd unix socket (one request in flight)."""

from __future__ import annotations

import asyncio
import itertools
from pathlib import Path
from typing import Any

from loguru import logger

from lnprune.utils.exceptions import (
    ConnectionClosedError,
    DownstreamRpcError,
    ProtocolMismatchError,
    RpcParseError,
    TransportError,
)

from .framing import FRAME_READ_SIZE, read_frame
from .protocol import Identifier, Params, RpcError, RpcRequest, RpcResponse
from .serialization import EnvelopeError, decode_response_bytes, encode_request_bytes


class BackendTransport:
    """Request/response round trips over one persistent stream connection."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        endpoint: str = "",
        read_size: int = FRAME_READ_SIZE,
        first_id: int = 1,
    ):
        self._reader = reader
        self._writer = writer
        self.endpoint = endpoint
        self._read_size = read_size
        self._ids = itertools.count(first_id)
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, path: Path | str, *, read_size: int = FRAME_READ_SIZE) -> BackendTransport:
        """Connect to the lightningd rpc socket."""
        endpoint = str(path)
        try:
            reader, writer = await asyncio.open_unix_connection(endpoint)
        except OSError as exc:
            raise TransportError(f"cannot connect to {endpoint}: {exc}", endpoint=endpoint) from exc
        logger.info("Connected to lightningd rpc socket {}", endpoint)
        return cls(reader, writer, endpoint=endpoint, read_size=read_size)

    def next_id(self) -> int:
        return next(self._ids)

    async def request(self, request: RpcRequest) -> RpcResponse:
        """Write one request and read back the framed response."""
        payload = encode_request_bytes(request)
        async with self._lock:
            try:
                self._writer.write(payload)
                await self._writer.drain()
                raw = await read_frame(self._reader, chunk_size=self._read_size)
            except ConnectionClosedError as exc:
                exc.details.setdefault("endpoint", self.endpoint)
                raise
            except OSError as exc:
                raise TransportError(f"{request.method}: {exc}", endpoint=self.endpoint) from exc
        try:
            return decode_response_bytes(raw)
        except EnvelopeError as exc:
            raise RpcParseError(f"invalid response envelope for {request.method}: {exc}", raw) from exc
        except (ValueError, RecursionError) as exc:
            # also covers UnicodeDecodeError and runaway nesting
            raise RpcParseError(f"malformed response to {request.method}: {exc}", raw) from exc

    async def call(self, method: str, params: Params | None = None, *, id: Identifier | None = None) -> Any:
        """Round trip with a fresh id; return the result or raise the peer's error."""
        req_id = self.next_id() if id is None else id
        response = await self.request(RpcRequest(method=method, params=params if params is not None else [], id=req_id))
        if response.id != req_id:
            raise ProtocolMismatchError(req_id, response.id)
        try:
            return response.unwrap()
        except RpcError as err:
            raise DownstreamRpcError("lightningd", method, err) from err

    async def close(self) -> None:
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as exc:
            logger.debug("Closing {} failed: {}", self.endpoint, exc)
