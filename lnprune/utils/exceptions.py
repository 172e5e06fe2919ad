"""
Exception hierarchy for lnprune.

Provides:
- Error classes with codes and categories
- Classification of foreign exceptions (transport, parse, fatal)
- Redaction of credentials before errors reach the logs
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any

import httpx


class ErrorCategory(Enum):
    """Error categories for classification."""
    RECOVERABLE = "recoverable"
    RETRYABLE = "retryable"
    FATAL = "fatal"
    VALIDATION = "validation"
    TIMEOUT = "timeout"


class LnpruneError(Exception):
    """Base exception for all lnprune errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class TransportError(LnpruneError):
    """Connection, read or write failure on an RPC connection."""

    def __init__(self, message: str, endpoint: str | None = None):
        details = {"endpoint": endpoint} if endpoint else {}
        super().__init__(message, code="TRANSPORT_ERROR", category=ErrorCategory.RETRYABLE, details=details)


class ConnectionClosedError(TransportError):
    """The peer closed the stream before a complete response arrived."""

    def __init__(self, message: str = "socket closed", endpoint: str | None = None):
        super().__init__(message, endpoint=endpoint)
        self.code = "CONNECTION_CLOSED"


class RpcParseError(LnpruneError):
    """A peer sent bytes that are not a valid JSON-RPC envelope."""

    def __init__(self, message: str, raw: bytes | str | None = None):
        details: dict[str, Any] = {}
        if raw is not None:
            text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
            details["raw"] = text[:200]
        super().__init__(message, code="PARSE_ERROR", category=ErrorCategory.VALIDATION, details=details)


class ProtocolMismatchError(LnpruneError):
    """A well-formed response that does not answer the request in flight."""

    def __init__(self, expected: Any, received: Any):
        super().__init__(
            f"response id {received!r} does not match request id {expected!r}",
            code="ID_MISMATCH",
            category=ErrorCategory.VALIDATION,
            details={"expected": expected, "received": received},
        )


class MalformedStatusError(LnpruneError):
    """The backend status payload is missing a usable height."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(
            message,
            code="MALFORMED_STATUS",
            category=ErrorCategory.VALIDATION,
            details={"payload": payload} if payload is not None else {},
        )


class DownstreamRpcError(LnpruneError):
    """A peer answered with a JSON-RPC error object."""

    def __init__(self, peer: str, method: str, error: Any):
        super().__init__(
            f"{peer} rejected {method}: {error}",
            code="DOWNSTREAM_RPC_ERROR",
            category=ErrorCategory.RECOVERABLE,
            details={"peer": peer, "method": method},
        )
        self.error = error


class DownstreamHttpError(LnpruneError):
    """The HTTP-RPC peer answered with a non-success status."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(
            f"http error {status_code}: {sanitize_error_message(body[:200]) or 'no body'}",
            code="DOWNSTREAM_HTTP_ERROR",
            category=ErrorCategory.RETRYABLE if status_code >= 500 else ErrorCategory.RECOVERABLE,
            details={"status_code": status_code},
        )
        self.status_code = status_code


class TemplateError(LnpruneError):
    """The downstream request template cannot produce a request."""

    def __init__(self, message: str):
        super().__init__(message, code="TEMPLATE_ERROR", category=ErrorCategory.FATAL)


class HandoffClosedError(LnpruneError):
    """The init channel no longer accepts a value."""

    def __init__(self, message: str = "init channel is closed"):
        super().__init__(message, code="HANDOFF_CLOSED", category=ErrorCategory.FATAL)


_SENSITIVE_PATTERNS = [
    re.compile(r"(rpcpassword|password|auth|token|secret)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"basic\s+[a-zA-Z0-9+/]+=*", re.IGNORECASE),
    re.compile(r"//[^/\s:@]+:[^/\s@]+@"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove credentials from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: BaseException) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).

    The pruning loop logs the code and category of every failed tick; it
    does not retry before the next interval.
    """
    if isinstance(exc, LnpruneError):
        return exc.code, exc.category, exc.category == ErrorCategory.RETRYABLE

    if isinstance(exc, httpx.TimeoutException):
        return "HTTP_TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, httpx.TransportError):
        return "HTTP_TRANSPORT_ERROR", ErrorCategory.RETRYABLE, True

    if isinstance(exc, httpx.HTTPError):
        return "HTTP_ERROR", ErrorCategory.RECOVERABLE, False

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, (ConnectionError, EOFError)):
        return "CONNECTION_ERROR", ErrorCategory.RETRYABLE, True

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION, False

    if isinstance(exc, OSError):
        return "OS_ERROR", ErrorCategory.RETRYABLE, True

    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False
