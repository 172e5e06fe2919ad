"""JSON-RPC envelopes, framing and the lightningd socket client."""

from .backend import BackendTransport
from .framing import FrameScanner, FrameState, iter_frames, read_frame
from .protocol import UNSET, ErrorCode, Identifier, RpcError, RpcRequest, RpcResponse
from .serialization import (
    EnvelopeError,
    decode_request,
    decode_response,
    encode_request,
    encode_response,
    to_rpc_error,
    with_info,
)

__all__ = [
    "BackendTransport",
    "EnvelopeError",
    "ErrorCode",
    "FrameScanner",
    "FrameState",
    "Identifier",
    "RpcError",
    "RpcRequest",
    "RpcResponse",
    "UNSET",
    "decode_request",
    "decode_response",
    "encode_request",
    "encode_response",
    "iter_frames",
    "read_frame",
    "to_rpc_error",
    "with_info",
]
