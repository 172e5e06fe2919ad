"""HTTP JSON-RPC client for the bitcoind that lightningd is attached to."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from lnprune.rpc.protocol import JSONRPC_VERSION, Params
from lnprune.rpc.serialization import EnvelopeError, decode_error, dumps
from lnprune.utils.exceptions import DownstreamHttpError, DownstreamRpcError, RpcParseError, TemplateError


def _kebab(name: str) -> str:
    return name.replace("_", "-")


def flatten_listconfigs(result: Any) -> dict[str, Any]:
    """
    Return listconfigs as a flat name -> value mapping.

    Older lightningd returns the flat mapping directly; newer releases nest
    each entry under `configs` with a typed `value_*` field.
    """
    if not isinstance(result, dict):
        return {}
    configs = result.get("configs")
    if not isinstance(configs, dict):
        return result
    flat: dict[str, Any] = {}
    for name, entry in configs.items():
        if not isinstance(entry, dict):
            continue
        for key in ("value_str", "value_int", "value_bool", "value_msat", "set"):
            if key in entry:
                flat[name] = entry[key]
                break
    return flat


def _error_record(error: Any) -> Any:
    """Decode a JSON-RPC error object, keeping non-conforming payloads as-is."""
    try:
        return decode_error(error)
    except EnvelopeError:
        return error


class BitcoinInfo(BaseModel):
    """bitcoind connection settings taken from lightningd's listconfigs."""
    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True)

    bitcoin_rpcuser: str = "bitcoin"
    bitcoin_rpcpassword: str = "local321"
    bitcoin_rpcconnect: str = "127.0.0.1"
    bitcoin_rpcport: int = Field(default=8332, gt=0, lt=65536)
    always_use_proxy: bool = False
    proxy: str | None = None

    @classmethod
    def from_listconfigs(cls, result: Any) -> BitcoinInfo:
        flat = {k: v for k, v in flatten_listconfigs(result).items() if v is not None}
        return cls.model_validate(flat)

    @property
    def url(self) -> str:
        host = self.bitcoin_rpcconnect.strip()
        if "://" in host:
            return f"{host.rstrip('/')}:{self.bitcoin_rpcport}/"
        return f"http://{host}:{self.bitcoin_rpcport}/"

    @property
    def proxy_url(self) -> str | None:
        if not (self.always_use_proxy and self.proxy):
            return None
        if "://" in self.proxy:
            return self.proxy
        return f"socks5://{self.proxy}"


@dataclass(frozen=True, slots=True)
class PruneRequestTemplate:
    """Fixed parts of every bitcoind request; `build` makes a fresh request per call."""

    url: str
    user: str
    password: str

    @classmethod
    def from_bitcoin_info(cls, info: BitcoinInfo) -> PruneRequestTemplate:
        template = cls(url=info.url, user=info.bitcoin_rpcuser, password=info.bitcoin_rpcpassword)
        template.build("getblockchaininfo", [], 0)
        return template

    @property
    def auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.user, self.password)

    def build(self, method: str, params: Params, req_id: int) -> httpx.Request:
        body = {"jsonrpc": JSONRPC_VERSION, "id": req_id, "method": method, "params": params}
        try:
            return httpx.Request(
                "POST",
                self.url,
                content=dumps(body).encode("utf-8"),
                headers={"Content-Type": "application/json", "Accept": "application/json"},
            )
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise TemplateError(f"cannot build bitcoind request for {self.url}: {exc}") from exc


class BitcoindClient:
    """Sends JSON-RPC calls built from a PruneRequestTemplate."""

    def __init__(
        self,
        template: PruneRequestTemplate,
        *,
        timeout: float = 30.0,
        proxy: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.template = template
        self._client = httpx.AsyncClient(timeout=timeout, proxy=proxy, transport=transport)
        self._ids = itertools.count(1)

    async def call(self, method: str, params: Params) -> Any:
        request = self.template.build(method, params, next(self._ids))
        response = await self._client.send(request, auth=self.template.auth)
        body: Any = None
        try:
            body = response.json()
        except (ValueError, RecursionError):
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        if error is not None:
            raise DownstreamRpcError("bitcoind", method, _error_record(error))
        if not response.is_success:
            raise DownstreamHttpError(response.status_code, response.text)
        if not isinstance(body, dict) or "result" not in body:
            raise RpcParseError(f"malformed bitcoind response to {method}", response.text)
        return body["result"]

    async def prune(self, target: int) -> Any:
        """Ask bitcoind to prune block files below `target`."""
        pruned = await self.call("pruneblockchain", [target])
        logger.info("bitcoind pruned up to height {}", pruned)
        return pruned

    async def aclose(self) -> None:
        await self._client.aclose()
