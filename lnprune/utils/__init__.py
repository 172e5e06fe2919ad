"""Utility functions for lnprune."""

from lnprune.utils.exceptions import (
    ConnectionClosedError,
    DownstreamHttpError,
    DownstreamRpcError,
    ErrorCategory,
    HandoffClosedError,
    LnpruneError,
    MalformedStatusError,
    ProtocolMismatchError,
    RpcParseError,
    TemplateError,
    TransportError,
    classify_exception,
    sanitize_error_message,
)

__all__ = [
    "ConnectionClosedError",
    "DownstreamHttpError",
    "DownstreamRpcError",
    "ErrorCategory",
    "HandoffClosedError",
    "LnpruneError",
    "MalformedStatusError",
    "ProtocolMismatchError",
    "RpcParseError",
    "TemplateError",
    "TransportError",
    "classify_exception",
    "sanitize_error_message",
]
