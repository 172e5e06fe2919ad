"""Serialization helpers for JSON-RPC 2.0 envelopes."""

from __future__ import annotations

import json
import math
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from .protocol import (
    JSONRPC_VERSION,
    UNSET,
    ErrorCode,
    Identifier,
    Params,
    RpcError,
    RpcRequest,
    RpcResponse,
)


class EnvelopeError(ValueError):
    """Well-formed JSON that violates the JSON-RPC 2.0 envelope contract."""


def dumps(payload: Any) -> str:
    """Serialize a JSON value strictly (no NaN/Infinity)."""
    return json.dumps(payload, ensure_ascii=False, allow_nan=False)


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {text}")
    return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number not allowed: {name}")


# Everything this decoder accepts can be written back by `dumps`.
STRICT_DECODER = json.JSONDecoder(parse_float=_finite_float, parse_constant=_reject_constant)


def loads(raw: str | bytes) -> Any:
    """Parse one JSON value, refusing NaN, Infinity and out-of-range floats."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    return STRICT_DECODER.decode(raw)


def _check_version(row: dict[str, Any], *, required: bool) -> None:
    if "jsonrpc" not in row:
        if required:
            raise EnvelopeError("missing field `jsonrpc`")
        return
    version = row["jsonrpc"]
    if not isinstance(version, str):
        raise EnvelopeError(f"invalid RPC version type: {type(version).__name__}")
    if version != JSONRPC_VERSION:
        raise EnvelopeError(f"invalid RPC version: {version}")


def _check_identifier(value: Any) -> Identifier:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        raise EnvelopeError(f"invalid id: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    raise EnvelopeError(f"invalid id: {value!r}")


def _check_params(value: Any) -> Params:
    if isinstance(value, (list, dict)):
        return value
    raise EnvelopeError(f"params must be an array or an object, got {type(value).__name__}")


def _as_object(payload: Any, what: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise EnvelopeError(f"{what} must be a JSON object, got {type(payload).__name__}")
    return payload


def encode_request(request: RpcRequest) -> dict[str, Any]:
    """Encode a request envelope as a JSON object; notifications carry no id."""
    payload: dict[str, Any] = {}
    if request.id is not UNSET:
        payload["id"] = request.id
    payload["jsonrpc"] = JSONRPC_VERSION
    payload["method"] = request.method
    payload["params"] = request.params
    return payload


def encode_request_bytes(request: RpcRequest) -> bytes:
    return dumps(encode_request(request)).encode("utf-8")


def decode_request(payload: Any) -> RpcRequest:
    """Decode a parsed JSON value into a request; a present null id is kept."""
    row = _as_object(payload, "request")
    _check_version(row, required=False)
    method = row.get("method")
    if not isinstance(method, str):
        raise EnvelopeError("missing or non-string field `method`")
    params = _check_params(row["params"]) if "params" in row else []
    req_id = _check_identifier(row["id"]) if "id" in row else UNSET
    return RpcRequest(method=method, params=params, id=req_id)


def encode_error(error: RpcError) -> dict[str, Any]:
    payload: dict[str, Any] = {"code": error.code, "message": error.message}
    if error.has_data:
        payload["data"] = error.data
    return payload


def decode_error(payload: Any) -> RpcError:
    row = _as_object(payload, "error")
    code = row.get("code")
    if not isinstance(code, (int, float)) or isinstance(code, bool):
        raise EnvelopeError(f"invalid error code: {code!r}")
    message = row.get("message")
    if not isinstance(message, str):
        raise EnvelopeError("missing or non-string field `message`")
    return RpcError(code=code, message=message, data=row["data"] if "data" in row else UNSET)


def encode_response(response: RpcResponse) -> dict[str, Any]:
    payload: dict[str, Any] = {"id": response.id, "jsonrpc": JSONRPC_VERSION}
    if response.error is not None:
        payload["error"] = encode_error(response.error)
    else:
        payload["result"] = response.result
    return payload


def encode_response_bytes(response: RpcResponse) -> bytes:
    return dumps(encode_response(response)).encode("utf-8")


def decode_response(payload: Any) -> RpcResponse:
    """Decode a parsed JSON value into a response with exactly one outcome."""
    row = _as_object(payload, "response")
    _check_version(row, required=True)
    if "id" not in row:
        raise EnvelopeError("missing field `id`")
    res_id = _check_identifier(row["id"])
    has_result = "result" in row
    has_error = "error" in row
    if has_result == has_error:
        raise EnvelopeError("response must carry exactly one of `result` or `error`")
    if has_error:
        return RpcResponse.failure(res_id, decode_error(row["error"]))
    return RpcResponse.success(res_id, row["result"])


def decode_response_bytes(raw: bytes) -> RpcResponse:
    """Parse raw bytes as one response; decoding and envelope errors raise ValueError subclasses."""
    return decode_response(loads(raw))


def to_rpc_error(failure: Any, code: int | float, message: str) -> RpcError:
    """
    Wrap a failure value as the data of an RpcError.

    Exceptions are embedded by their message. A failure that cannot be
    serialized collapses to a fixed serialization error instead.
    """
    data = str(failure) if isinstance(failure, BaseException) else failure
    try:
        dumps(data)
    except (TypeError, ValueError) as exc:
        return RpcError(code=ErrorCode.SERIALIZATION, message="serialization error", data=str(exc))
    return RpcError(code=code, message=message, data=data)


@contextmanager
def with_info(
    code: int | float,
    message: str,
    *exc_types: type[BaseException],
) -> Iterator[None]:
    """Re-raise the given exceptions (default: any Exception) as RpcError."""
    catch = exc_types or (Exception,)
    try:
        yield
    except RpcError:
        raise
    except catch as exc:
        raise to_rpc_error(exc, code, message) from exc
