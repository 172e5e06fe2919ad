"""Request loop for the lightningd plugin protocol on stdin/stdout."""

from __future__ import annotations

import sys
from typing import Any, TextIO

from loguru import logger
from pydantic import ValidationError

from lnprune.handoff import InitChannel
from lnprune.rpc.protocol import ErrorCode, Params, RpcError, RpcRequest, RpcResponse
from lnprune.rpc.serialization import EnvelopeError, decode_request, dumps, encode_response, with_info
from lnprune.utils.exceptions import HandoffClosedError

from .init_payload import DEFAULT_PRUNING_INTERVAL, LightningInit
from .stream import DocumentError, iter_documents

REPLY_TERMINATOR = "\n\n"

MANIFEST: dict[str, Any] = {
    "options": [
        {
            "name": "pruning-interval",
            "type": "int",
            "default": DEFAULT_PRUNING_INTERVAL,
            "description": "number of seconds to wait between pruning checks",
        }
    ],
    "rpcmethods": [],
    "subscriptions": [],
    "hooks": [],
    "features": {
        "node": "00000000",
        "init": "00000000",
        "invoice": "00000000",
    },
    "dynamic": True,
}


def deserialization_error(cause: DocumentError | EnvelopeError) -> RpcResponse:
    return RpcResponse.failure(
        None,
        RpcError(code=ErrorCode.DESERIALIZATION, message="deserialization error", data=str(cause)),
    )


def encode_reply(response: RpcResponse) -> str:
    """Serialize a reply; one that cannot be serialized becomes a serialization error."""
    try:
        return dumps(encode_response(response))
    except (TypeError, ValueError) as exc:
        logger.error("Cannot serialize reply to id {!r}: {}", response.id, exc)
        reply_id = response.id
        try:
            dumps(reply_id)
        except (TypeError, ValueError):
            reply_id = None
        fallback = RpcResponse.failure(
            reply_id,
            RpcError(code=ErrorCode.SERIALIZATION, message="serialization error", data=str(exc)),
        )
        return dumps(encode_response(fallback))


def _tolerant_input(stream: TextIO) -> TextIO:
    # undecodable bytes become U+FFFD and then fail JSON parsing like any other typo
    reconfigure = getattr(stream, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(errors="replace")
    return stream


class ControlDispatcher:
    """Blocking dispatcher for requests from lightningd."""

    def __init__(
        self,
        channel: InitChannel,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ):
        self.channel = channel
        self._stdin = _tolerant_input(stdin if stdin is not None else sys.stdin)
        self._stdout = stdout if stdout is not None else sys.stdout

    def handle_init(self, params: Params) -> dict[str, Any]:
        if isinstance(params, list):
            if not params:
                raise RpcError(code=ErrorCode.NO_ARGUMENTS, message="no arguments supplied")
            arg0 = params[0]
        else:
            arg0 = params
        with with_info(ErrorCode.PARAMS_DESERIALIZATION, "params deserialization error", ValidationError):
            init = LightningInit.model_validate(arg0)
        info = init.to_init_info()
        try:
            self.channel.send(info)
        except HandoffClosedError as exc:
            # a repeated init is harmless once the first one was delivered
            logger.warning("SEND ERROR: {}", exc)
        else:
            logger.info("Init received: socket={} interval={}s", info.socket_path, info.pruning_interval)
        return {}

    def handle_getmanifest(self, params: Params) -> dict[str, Any]:
        return MANIFEST

    def handle_event(self, method: str, params: Params) -> None:
        logger.debug("Ignoring notification {}", method)

    def handle_request(self, request: RpcRequest) -> RpcResponse | None:
        """Route one envelope; notifications produce no response."""
        if request.is_notification:
            try:
                self.handle_event(request.method, request.params)
            except Exception as exc:
                logger.error("RPC EVENT HANDLER ERROR: {}", exc)
            return None
        try:
            if request.method == "init":
                result = self.handle_init(request.params)
            elif request.method == "getmanifest":
                result = self.handle_getmanifest(request.params)
            else:
                raise RpcError(code=ErrorCode.UNKNOWN_METHOD, message="unknown method", data=request.method)
        except RpcError as err:
            logger.error("RPC REQUEST HANDLER ERROR: {}", err)
            return RpcResponse.failure(request.id, err)
        return RpcResponse.success(request.id, result)

    def handle_document(self, document: Any) -> RpcResponse | None:
        if isinstance(document, (ValueError, RecursionError)):
            logger.warning("Malformed request from lightningd: {}", document)
            return deserialization_error(document)
        try:
            request = decode_request(document)
        except EnvelopeError as exc:
            logger.warning("Invalid request envelope from lightningd: {}", exc)
            return deserialization_error(exc)
        return self.handle_request(request)

    def write_response(self, response: RpcResponse) -> None:
        self._stdout.write(encode_reply(response) + REPLY_TERMINATOR)
        self._stdout.flush()

    def run(self) -> None:
        """Serve until the control input ends; write failures propagate."""
        for document in iter_documents(self._stdin):
            response = self.handle_document(document)
            if response is not None:
                self.write_response(response)
        logger.info("Control input closed")
