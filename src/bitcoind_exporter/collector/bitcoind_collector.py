"""
Collector for a bitcoind node. Runs the status RPCs in dependency order
and writes the answers into BitcoinMetrics.

The first failed call ends the run. Whatever was written before the
failure stays in the registry (no rollback), and the failure is returned
rather than raised so the scrape handler can turn it into a response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from bitcoind_exporter.collector.base import NodeStatusClient, RemoteCallFailure
from bitcoind_exporter.collector.models import (
    BlockchainInfo,
    NetworkInfo,
    sats_to_btc,
    warning_count,
)
from bitcoind_exporter.metrics import BAN_REASON, FEE_HORIZONS, BitcoinMetrics

log = logging.getLogger(__name__)

HASHPS_WINDOW = 120


@dataclass(frozen=True)
class CollectionResult:
    error: Optional[RemoteCallFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BitcoindCollector:

    def __init__(self, client: NodeStatusClient, metrics: BitcoinMetrics):
        self._client = client
        self._metrics = metrics

    @property
    def metrics(self) -> BitcoinMetrics:
        return self._metrics

    def collect(self) -> CollectionResult:
        """Run one full collection. Never raises RemoteCallFailure."""
        try:
            network = self._client.get_network_info()
            chain = self._collect_blockchain(network)
            log.debug("chain=%s height=%d", chain.chain, chain.blocks)
            self._collect_network(network)
            self._collect_fees()
            self._collect_hashps()
            self._collect_bans()
            self._collect_chaintips()
            self._collect_mempool()
            self._collect_net_totals()
        except RemoteCallFailure as e:
            log.debug("Collection aborted: %s", e)
            return CollectionResult(error=e)
        return CollectionResult()

    def _collect_blockchain(self, network: NetworkInfo) -> BlockchainInfo:
        m = self._metrics
        chain = self._client.get_blockchain_info()
        m.blocks.set(chain.blocks)
        m.difficulty.set(chain.difficulty)
        m.size_on_disk.set(chain.size_on_disk)
        m.verification_progress.set(chain.verification_progress)

        uptime = self._client.get_uptime()
        m.uptime.labels(
            version=str(network.version),
            protocol=str(network.protocol_version),
            chain=chain.chain,
        ).set(uptime)

        # best block must resolve; a node that can't is inconsistent
        header = self._client.get_block_header(chain.best_block_hash)
        stats = self._client.get_block_stats(header.height)
        m.latest_block_size.set(stats.total_size)
        m.latest_block_txs.set(stats.txs)
        m.latest_block_height.set(stats.height)
        m.latest_block_weight.set(stats.total_weight)
        m.latest_block_inputs.set(stats.ins)
        m.latest_block_outputs.set(stats.outs)
        m.latest_block_value.set(sats_to_btc(stats.total_out))
        m.latest_block_fee.set(sats_to_btc(stats.total_fee))
        return chain

    def _collect_network(self, network: NetworkInfo):
        m = self._metrics
        m.peers.set(network.connections)
        if network.connections_in is not None:
            m.conn_in.set(network.connections_in)
        if network.connections_out is not None:
            m.conn_out.set(network.connections_out)

        # Accumulates over the process lifetime, not the current count
        count = warning_count(network.warnings)
        if count:
            m.warnings.inc(count)

    def _collect_fees(self):
        for blocks in FEE_HORIZONS:
            estimate = self._client.estimate_smart_fee(blocks)
            fee_rate = estimate.fee_rate_sats
            if fee_rate is None:
                log.debug("No fee estimate for %d blocks: %s", blocks, estimate.errors)
                continue
            self._metrics.smart_fee[blocks].set(fee_rate)

    def _collect_hashps(self):
        self._metrics.hashps.set(self._client.get_network_hash_ps(HASHPS_WINDOW))
        self._metrics.hashps_1.set(self._client.get_network_hash_ps(1))

    def _collect_bans(self):
        # Unbanned addresses keep their last series until restart
        for ban in self._client.list_banned():
            self._metrics.ban_created.labels(address=ban.address, reason=BAN_REASON).set(ban.ban_created)
            self._metrics.banned_until.labels(address=ban.address, reason=BAN_REASON).set(ban.banned_until)

    def _collect_chaintips(self):
        self._metrics.num_chaintips.set(len(self._client.get_chain_tips()))

    def _collect_mempool(self):
        m = self._metrics
        mempool = self._client.get_mempool_info()
        m.mempool_bytes.set(mempool.bytes)
        m.mempool_size.set(mempool.size)
        m.mempool_usage.set(mempool.usage)
        # Older nodes omit the field entirely; that means none pending
        m.mempool_unbroadcast.set(mempool.unbroadcast_count or 0)

    def _collect_net_totals(self):
        totals = self._client.get_net_totals()
        self._metrics.total_bytes_recv.set(totals.total_bytes_recv)
        self._metrics.total_bytes_sent.set(totals.total_bytes_sent)
