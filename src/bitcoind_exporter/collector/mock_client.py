"""
In-process node client serving the fake server's canned state.
Used by --mock and by the collector tests, no network involved.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

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
from bitcoind_exporter.mock.fake_bitcoind_server import DEFAULT_RESPONSES, resolve_result

T = TypeVar("T")


class MockNodeClient(NodeStatusClient):
    """Wraps the canned RPC results as a standard client.

    `overrides` replaces results by RPC method name (values may be callables
    taking the params list); methods listed in `failing` raise
    RemoteCallFailure. Every call is appended to `calls` as (method, params).
    """

    def __init__(
        self,
        overrides: Optional[Dict[str, Any]] = None,
        failing: Iterable[str] = (),
    ):
        self.responses = dict(DEFAULT_RESPONSES)
        self.responses.update(overrides or {})
        self.failing = set(failing)
        self.calls: List[tuple] = []

    def _fetch(self, method: str, parse: Callable[[Any], T], *params: Any) -> T:
        self.calls.append((method, list(params)))
        if method in self.failing:
            raise RemoteCallFailure(method, RPCError(-1, f"{method} is unavailable"))
        result = resolve_result(self.responses, method, list(params))
        # Same decoding as the wire so amounts come through as Decimal
        raw = json.loads(json.dumps(result), parse_float=Decimal)
        try:
            return parse(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteCallFailure(method, f"malformed result: {e!r}") from e

    def methods_called(self) -> List[str]:
        return [method for method, _ in self.calls]

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
        return "Mock bitcoind (mainnet, height 840000)"
