"""JSON-RPC 2.0 envelope models shared by the control and backend sides."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final, Union

JSONRPC_VERSION: Final = "2.0"

Identifier = Union[int, float, str, None]
Params = Union[list[Any], dict[str, Any]]


class _Unset:
    """Marker for a field that is absent on the wire (as opposed to null)."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()


class ErrorCode:
    """Numeric error codes used in replies to the control peer."""

    DESERIALIZATION = 1
    SERIALIZATION = 2
    UNKNOWN_METHOD = 3
    NO_ARGUMENTS = 4
    PARAMS_DESERIALIZATION = 5


@dataclass(slots=True, eq=True)
class RpcError(Exception):
    """JSON-RPC error record; raisable so handlers can fail with it directly."""

    code: int | float
    message: str
    data: Any = UNSET

    __hash__ = Exception.__hash__

    @property
    def has_data(self) -> bool:
        return self.data is not UNSET

    def __str__(self) -> str:
        if self.has_data:
            return f"{self.code}: {self.message}: {self.data}"
        return f"{self.code}: {self.message}"


@dataclass(slots=True)
class RpcRequest:
    """Request envelope; an unset id makes it a notification."""

    method: str
    params: Params = field(default_factory=list)
    id: Identifier | _Unset = UNSET

    @property
    def is_notification(self) -> bool:
        return self.id is UNSET


@dataclass(slots=True)
class RpcResponse:
    """Response envelope carrying exactly one of result or error."""

    id: Identifier
    result: Any = None
    error: RpcError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, id: Identifier, result: Any) -> RpcResponse:
        return cls(id=id, result=result)

    @classmethod
    def failure(cls, id: Identifier, error: RpcError) -> RpcResponse:
        return cls(id=id, error=error)

    def unwrap(self) -> Any:
        """Return the result, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.result
