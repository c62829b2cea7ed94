"""Tests for the Rich terminal view of a collection."""

from prometheus_client import CollectorRegistry
from rich.console import Console

from bitcoind_exporter.collector.base import RemoteCallFailure
from bitcoind_exporter.collector.bitcoind_collector import BitcoindCollector, CollectionResult
from bitcoind_exporter.collector.mock_client import MockNodeClient
from bitcoind_exporter.dashboard.terminal import build_table, iter_samples, print_collection
from bitcoind_exporter.metrics import BitcoinMetrics


def _collected_metrics() -> BitcoinMetrics:
    metrics = BitcoinMetrics(CollectorRegistry())
    BitcoindCollector(MockNodeClient(), metrics).collect()
    return metrics


def test_iter_samples_skips_created_timestamps():
    names = [name for name, _, _ in iter_samples(_collected_metrics().registry)]
    assert "bitcoin_warnings_total" in names
    assert not any(name.endswith("_created") for name in names)


def test_iter_samples_formats_labels():
    samples = {name: labels for name, labels, _ in iter_samples(_collected_metrics().registry)}
    assert samples["bitcoin_ban_created"] == 'address="192.0.2.10/32", reason="manually added"'
    assert samples["bitcoin_blocks"] == ""


def test_build_table_has_a_row_per_sample():
    registry = _collected_metrics().registry
    table = build_table(registry, "test")
    assert table.row_count == len(list(iter_samples(registry)))


def test_print_collection_success():
    console = Console(record=True, width=200)
    registry = _collected_metrics().registry

    assert print_collection(CollectionResult(), registry, "test", console=console)
    assert "bitcoin_mempool_size" in console.export_text()


def test_print_collection_failure():
    console = Console(record=True, width=200)
    error = RemoteCallFailure("getnettotals", "boom")

    assert not print_collection(CollectionResult(error=error), CollectorRegistry(), "test", console=console)
    assert "getnettotals failed: boom" in console.export_text()
