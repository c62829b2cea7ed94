"""
Typed snapshots of bitcoind RPC results.

Each one is built from the raw JSON `result` of a single call and only
lives for one scrape. Amounts arrive as Decimal (the client decodes JSON
floats with parse_float=Decimal) so BTC <-> satoshi conversion is exact.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Union

SATS_PER_BTC = 100_000_000

# getnetworkinfo returns a plain string before v25 and a list of strings after
Warnings = Union[str, List[str]]


def _opt_int(value) -> Optional[int]:
    return None if value is None else int(value)


def btc_to_sats(amount: Decimal) -> int:
    return int((Decimal(amount) * SATS_PER_BTC).to_integral_value())


def sats_to_btc(amount: int) -> float:
    return float(Decimal(amount) / SATS_PER_BTC)


def warning_count(warnings: Warnings) -> int:
    """How many warnings the node is reporting.

    A single string counts as one warning unless it is empty; a list
    counts each entry.
    """
    if isinstance(warnings, list):
        return len(warnings)
    if isinstance(warnings, str):
        return 1 if warnings else 0
    raise TypeError(f"unexpected warnings type: {type(warnings).__name__}")


@dataclass(frozen=True)
class NetworkInfo:
    version: int
    subversion: str
    protocol_version: int
    connections: int
    connections_in: Optional[int] = None   # added in v21
    connections_out: Optional[int] = None
    warnings: Warnings = ""

    @classmethod
    def from_rpc(cls, result: dict) -> NetworkInfo:
        warnings = result.get("warnings", "")
        if not isinstance(warnings, (str, list)):
            raise TypeError(f"unexpected warnings type: {type(warnings).__name__}")
        return cls(
            version=int(result["version"]),
            subversion=result.get("subversion", ""),
            protocol_version=int(result["protocolversion"]),
            connections=int(result["connections"]),
            connections_in=_opt_int(result.get("connections_in")),
            connections_out=_opt_int(result.get("connections_out")),
            warnings=warnings,
        )


@dataclass(frozen=True)
class BlockchainInfo:
    chain: str
    blocks: int
    headers: int
    best_block_hash: str
    difficulty: float
    verification_progress: float
    size_on_disk: int

    @classmethod
    def from_rpc(cls, result: dict) -> BlockchainInfo:
        return cls(
            chain=result["chain"],
            blocks=int(result["blocks"]),
            headers=int(result.get("headers", result["blocks"])),
            best_block_hash=result["bestblockhash"],
            difficulty=float(result["difficulty"]),
            verification_progress=float(result["verificationprogress"]),
            size_on_disk=int(result["size_on_disk"]),
        )


@dataclass(frozen=True)
class BlockHeader:
    hash: str
    height: int

    @classmethod
    def from_rpc(cls, result: dict) -> BlockHeader:
        return cls(hash=result["hash"], height=int(result["height"]))


@dataclass(frozen=True)
class BlockStats:
    height: int
    total_size: int
    txs: int
    total_weight: int
    ins: int
    outs: int
    total_out: int   # satoshi
    total_fee: int   # satoshi

    @classmethod
    def from_rpc(cls, result: dict) -> BlockStats:
        return cls(
            height=int(result["height"]),
            total_size=int(result["total_size"]),
            txs=int(result["txs"]),
            total_weight=int(result["total_weight"]),
            ins=int(result["ins"]),
            outs=int(result["outs"]),
            total_out=int(result["total_out"]),
            total_fee=int(result["totalfee"]),
        )


@dataclass(frozen=True)
class FeeEstimate:
    """estimatesmartfee result. fee_rate is BTC/kvB, None when the node
    doesn't have enough data yet."""

    blocks: int
    fee_rate: Optional[Decimal] = None
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_rpc(cls, result: dict) -> FeeEstimate:
        fee_rate = result.get("feerate")
        return cls(
            blocks=int(result.get("blocks", 0)),
            fee_rate=None if fee_rate is None else Decimal(str(fee_rate)),
            errors=list(result.get("errors", [])),
        )

    @property
    def fee_rate_sats(self) -> Optional[int]:
        if self.fee_rate is None:
            return None
        return btc_to_sats(self.fee_rate)


@dataclass(frozen=True)
class MempoolInfo:
    size: int
    bytes: int
    usage: int
    unbroadcast_count: Optional[int] = None   # missing before v21

    @classmethod
    def from_rpc(cls, result: dict) -> MempoolInfo:
        return cls(
            size=int(result["size"]),
            bytes=int(result["bytes"]),
            usage=int(result["usage"]),
            unbroadcast_count=_opt_int(result.get("unbroadcastcount")),
        )


@dataclass(frozen=True)
class NetTotals:
    total_bytes_recv: int
    total_bytes_sent: int

    @classmethod
    def from_rpc(cls, result: dict) -> NetTotals:
        return cls(
            total_bytes_recv=int(result["totalbytesrecv"]),
            total_bytes_sent=int(result["totalbytessent"]),
        )


@dataclass(frozen=True)
class BanEntry:
    address: str
    ban_created: int
    banned_until: int

    @classmethod
    def from_rpc(cls, result: dict) -> BanEntry:
        return cls(
            address=result["address"],
            ban_created=int(result["ban_created"]),
            banned_until=int(result["banned_until"]),
        )


@dataclass(frozen=True)
class ChainTip:
    height: int
    hash: str
    branch_length: int
    status: str

    @classmethod
    def from_rpc(cls, result: dict) -> ChainTip:
        return cls(
            height=int(result["height"]),
            hash=result["hash"],
            branch_length=int(result["branchlen"]),
            status=result["status"],
        )
