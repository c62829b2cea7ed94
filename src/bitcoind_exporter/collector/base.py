"""
Node status client interface.

Anything that can answer the bitcoind status queries the collector needs.
Keeps the collector decoupled from where the answers come from (a real
node over JSON-RPC, or the in-process mock).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

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


class RPCError(Exception):
    """Error object returned by bitcoind in a JSON-RPC response."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"RPC error {code}: {message}")


class RemoteCallFailure(Exception):
    """A single remote query failed. Carries the operation name and cause."""

    def __init__(self, operation: str, cause):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")


class NodeStatusClient(ABC):
    """Interface for all node status sources.

    Every method either returns a snapshot or raises RemoteCallFailure.
    Nothing retries.
    """

    @abstractmethod
    def get_network_info(self) -> NetworkInfo:
        ...

    @abstractmethod
    def get_blockchain_info(self) -> BlockchainInfo:
        ...

    @abstractmethod
    def get_uptime(self) -> int:
        ...

    @abstractmethod
    def get_block_header(self, block_hash: str) -> BlockHeader:
        ...

    @abstractmethod
    def get_block_stats(self, height: int) -> BlockStats:
        ...

    @abstractmethod
    def estimate_smart_fee(self, target_blocks: int) -> FeeEstimate:
        """A missing fee rate on the result is not an error."""
        ...

    @abstractmethod
    def get_network_hash_ps(self, window_blocks: int, height: Optional[int] = None) -> float:
        ...

    @abstractmethod
    def list_banned(self) -> List[BanEntry]:
        ...

    @abstractmethod
    def get_chain_tips(self) -> List[ChainTip]:
        ...

    @abstractmethod
    def get_mempool_info(self) -> MempoolInfo:
        ...

    @abstractmethod
    def get_net_totals(self) -> NetTotals:
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self):
        pass
