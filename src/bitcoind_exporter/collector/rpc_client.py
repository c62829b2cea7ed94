"""
Client for a live bitcoind node. Speaks JSON-RPC 1.0 over HTTP and maps
each result into the typed snapshots from models.py.

bitcoind answers RPC-level errors with HTTP 500 (or 404 for unknown
methods) and a JSON body, so the envelope is read before the status code.
Any failure, whether transport, HTTP, RPC, or a malformed result, comes out
as RemoteCallFailure naming the RPC method.
"""

from __future__ import annotations

import itertools
import logging
from decimal import Decimal
from typing import Any, Callable, List, Optional, Tuple, TypeVar

import httpx

from bitcoind_exporter.collector.base import NodeStatusClient, RemoteCallFailure, RPCError
from bitcoind_exporter.collector.models import (
    BanEntry,
    BlockchainInfo,
    BlockHeader,
    BlockStats,
    ChainTip,
    FeeEstimate,
    MempoolInfo,
    NetTotals,
    NetworkInfo,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RPC_URL = "http://127.0.0.1:8332"


class BitcoindRPCClient(NodeStatusClient):

    def __init__(
        self,
        url: str = DEFAULT_RPC_URL,
        auth: Optional[Tuple[str, str]] = None,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._url = url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._url, auth=auth, timeout=timeout_seconds, transport=transport
        )
        self._ids = itertools.count(1)

    def call(self, method: str, *params: Any) -> Any:
        """Issue one RPC and return its raw `result`."""
        payload = {
            "jsonrpc": "1.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }
        log.debug("rpc %s %s", method, payload["params"])

        try:
            response = self._client.post("/", json=payload)
        except httpx.HTTPError as e:
            raise RemoteCallFailure(method, e) from e

        try:
            body = response.json(parse_float=Decimal)
        except ValueError:
            # 401 from a bad password comes back with an empty body
            raise RemoteCallFailure(
                method, f"HTTP {response.status_code} {response.reason_phrase}".strip()
            ) from None

        if not isinstance(body, dict):
            raise RemoteCallFailure(method, f"unexpected response: {body!r}")

        error = body.get("error")
        if error:
            # Overloaded nodes can answer with a bare string instead of {code, message}
            if isinstance(error, dict):
                raise RemoteCallFailure(method, RPCError(error.get("code", 0), error.get("message", "")))
            raise RemoteCallFailure(method, str(error))

        if response.is_error:
            raise RemoteCallFailure(method, f"HTTP {response.status_code}")

        return body.get("result")

    def _fetch(self, method: str, parse: Callable[[Any], T], *params: Any) -> T:
        result = self.call(method, *params)
        try:
            return parse(result)
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteCallFailure(method, f"malformed result: {e!r}") from e

    def get_network_info(self) -> NetworkInfo:
        return self._fetch("getnetworkinfo", NetworkInfo.from_rpc)

    def get_blockchain_info(self) -> BlockchainInfo:
        return self._fetch("getblockchaininfo", BlockchainInfo.from_rpc)

    def get_uptime(self) -> int:
        return self._fetch("uptime", int)

    def get_block_header(self, block_hash: str) -> BlockHeader:
        return self._fetch("getblockheader", BlockHeader.from_rpc, block_hash, True)

    def get_block_stats(self, height: int) -> BlockStats:
        return self._fetch("getblockstats", BlockStats.from_rpc, height)

    def estimate_smart_fee(self, target_blocks: int) -> FeeEstimate:
        return self._fetch("estimatesmartfee", FeeEstimate.from_rpc, target_blocks)

    def get_network_hash_ps(self, window_blocks: int, height: Optional[int] = None) -> float:
        params = [window_blocks] if height is None else [window_blocks, height]
        return self._fetch("getnetworkhashps", float, *params)

    def list_banned(self) -> List[BanEntry]:
        return self._fetch("listbanned", lambda r: [BanEntry.from_rpc(b) for b in r])

    def get_chain_tips(self) -> List[ChainTip]:
        return self._fetch("getchaintips", lambda r: [ChainTip.from_rpc(t) for t in r])

    def get_mempool_info(self) -> MempoolInfo:
        return self._fetch("getmempoolinfo", MempoolInfo.from_rpc)

    def get_net_totals(self) -> NetTotals:
        return self._fetch("getnettotals", NetTotals.from_rpc)

    def name(self) -> str:
        return f"bitcoind ({self._url})"

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
