"""
Metric definitions for bitcoind-exporter.

Names follow the long-standing bitcoin-prometheus-exporter layout. The one
exception is the warnings counter, which prometheus_client exports as
bitcoin_warnings_total (plus bitcoin_warnings_created) rather than the
old bare bitcoin_warnings. Everything is registered against the
registry passed in, never the process-global default, so each test (or
each exporter instance) gets an isolated sink.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge

# Confirmation targets we ask estimatesmartfee about
FEE_HORIZONS = (2, 3, 5, 20)

# listbanned no longer returns a reason; every ban is reported with this one
BAN_REASON = "manually added"


class OptionalGauge:
    """Unlabeled gauge that is only exported once it has been set.

    A plain Gauge reads 0 from the moment it is registered, which would make
    "the node didn't say" indistinguishable from a real zero.
    """

    def __init__(self, name: str, documentation: str, registry: CollectorRegistry):
        self._gauge = Gauge(name, documentation, registry=None)
        self._registry = registry
        self._registered = False
        self._lock = threading.Lock()

    @property
    def registered(self) -> bool:
        return self._registered

    def set(self, value: float):
        with self._lock:
            if not self._registered:
                self._registry.register(self._gauge)
                self._registered = True
        self._gauge.set(value)


class BitcoinMetrics:
    """All series the collector writes, bound to one registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        r = self.registry

        # getblockchaininfo
        self.blocks = Gauge("bitcoin_blocks", "Block height", registry=r)
        self.difficulty = Gauge("bitcoin_difficulty", "Difficulty", registry=r)
        self.size_on_disk = Gauge("bitcoin_size_on_disk", "Estimated size of the block and undo files", registry=r)
        self.verification_progress = Gauge(
            "bitcoin_verification_progress", "Estimate of verification progress [0..1]", registry=r
        )

        # uptime, labeled by what only changes on upgrade or chain switch
        self.uptime = Gauge(
            "bitcoin_uptime", "Number of seconds the node has been running",
            ["version", "protocol", "chain"], registry=r,
        )

        # getblockstats of the best block
        self.latest_block_size = Gauge("bitcoin_latest_block_size", "Size of latest block in bytes", registry=r)
        self.latest_block_txs = Gauge("bitcoin_latest_block_txs", "Number of transactions in latest block", registry=r)
        self.latest_block_height = Gauge("bitcoin_latest_block_height", "Height of latest block", registry=r)
        self.latest_block_weight = Gauge("bitcoin_latest_block_weight", "Weight of latest block", registry=r)
        self.latest_block_inputs = Gauge("bitcoin_latest_block_inputs", "Number of inputs in latest block", registry=r)
        self.latest_block_outputs = Gauge("bitcoin_latest_block_outputs", "Number of outputs in latest block", registry=r)
        self.latest_block_value = Gauge(
            "bitcoin_latest_block_value", "Bitcoin value of all transactions in the latest block", registry=r
        )
        self.latest_block_fee = Gauge(
            "bitcoin_latest_block_fee", "Total fee to process the latest block", registry=r
        )

        # getnetworkinfo
        self.peers = Gauge("bitcoin_peers", "Number of peers", registry=r)
        # missing before v21, so not exported until the node reports them
        self.conn_in = OptionalGauge("bitcoin_conn_in", "Number of connections in", r)
        self.conn_out = OptionalGauge("bitcoin_conn_out", "Number of connections out", r)
        self.warnings = Counter("bitcoin_warnings", "Number of network or blockchain warnings detected", registry=r)

        # estimatesmartfee, integer satoshi per kvB
        self.smart_fee: Dict[int, Gauge] = {
            blocks: Gauge(
                f"bitcoin_est_smart_fee_{blocks}",
                f"Estimated smart fee per kilobyte for confirmation in {blocks} blocks",
                registry=r,
            )
            for blocks in FEE_HORIZONS
        }

        # getnetworkhashps
        self.hashps = Gauge(
            "bitcoin_hashps", "Estimated network hash rate per second for the last 120 blocks", registry=r
        )
        self.hashps_1 = Gauge(
            "bitcoin_hashps_1", "Estimated network hash rate per second for the last block", registry=r
        )

        # listbanned
        self.ban_created = Gauge(
            "bitcoin_ban_created", "Time the ban was created", ["address", "reason"], registry=r
        )
        self.banned_until = Gauge(
            "bitcoin_banned_until", "Time the ban expires", ["address", "reason"], registry=r
        )

        # getchaintips
        self.num_chaintips = Gauge("bitcoin_num_chaintips", "Number of known blockchain branches", registry=r)

        # getmempoolinfo
        self.mempool_bytes = Gauge("bitcoin_mempool_bytes", "Size of mempool in bytes", registry=r)
        self.mempool_size = Gauge("bitcoin_mempool_size", "Number of unconfirmed transactions in mempool", registry=r)
        self.mempool_usage = Gauge("bitcoin_mempool_usage", "Total memory usage for the mempool", registry=r)
        self.mempool_unbroadcast = Gauge(
            "bitcoin_mempool_unbroadcast", "Number of transactions waiting for acknowledgment", registry=r
        )

        # getnettotals
        self.total_bytes_recv = Gauge("bitcoin_total_bytes_recv", "Total bytes received", registry=r)
        self.total_bytes_sent = Gauge("bitcoin_total_bytes_sent", "Total bytes sent", registry=r)
