"""
Tests for the JSON-RPC client using the fake bitcoind server.

Starts the fake server in a thread on a free port, points the client at
it, and checks both the happy path and each way a call can fail.
"""

import threading
from decimal import Decimal

import httpx
import pytest
from prometheus_client import CollectorRegistry

from bitcoind_exporter.collector.base import RemoteCallFailure, RPCError
from bitcoind_exporter.collector.bitcoind_collector import BitcoindCollector
from bitcoind_exporter.collector.rpc_client import BitcoindRPCClient
from bitcoind_exporter.metrics import BitcoinMetrics
from bitcoind_exporter.mock.fake_bitcoind_server import BEST_BLOCK_HASH, FakeBitcoindServer


def _start_test_server(**kwargs) -> FakeBitcoindServer:
    server = FakeBitcoindServer(("127.0.0.1", 0), **kwargs)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


def _stop(server: FakeBitcoindServer):
    server.shutdown()
    server.server_close()


def test_client_reads_network_and_chain_info():
    server = _start_test_server()
    try:
        with BitcoindRPCClient(server.url) as client:
            network = client.get_network_info()
            chain = client.get_blockchain_info()

        assert network.version == 270000
        assert network.protocol_version == 70016
        assert network.connections_in == 2
        assert chain.chain == "main"
        assert chain.best_block_hash == BEST_BLOCK_HASH
        assert chain.blocks == 840000
    finally:
        _stop(server)


def test_feerate_decoded_as_exact_decimal():
    server = _start_test_server()
    try:
        with BitcoindRPCClient(server.url) as client:
            estimate = client.estimate_smart_fee(2)

        assert estimate.fee_rate == Decimal("0.00031")
        assert estimate.fee_rate_sats == 31000
    finally:
        _stop(server)


def test_missing_feerate_is_not_a_failure():
    server = _start_test_server()
    try:
        with BitcoindRPCClient(server.url) as client:
            estimate = client.estimate_smart_fee(1000)

        assert estimate.fee_rate is None
        assert estimate.errors
    finally:
        _stop(server)


def test_request_params_sent_positionally():
    server = _start_test_server()
    try:
        with BitcoindRPCClient(server.url) as client:
            client.get_network_hash_ps(120)
            client.get_network_hash_ps(1, 840000)
            client.get_block_stats(840000)

        assert server.requests == [
            ("getnetworkhashps", [120]),
            ("getnetworkhashps", [1, 840000]),
            ("getblockstats", [840000]),
        ]
    finally:
        _stop(server)


def test_rpc_error_becomes_remote_call_failure():
    server = _start_test_server(failing={"getmempoolinfo"})
    try:
        with BitcoindRPCClient(server.url) as client:
            with pytest.raises(RemoteCallFailure) as exc_info:
                client.get_mempool_info()

        failure = exc_info.value
        assert failure.operation == "getmempoolinfo"
        assert isinstance(failure.cause, RPCError)
        assert failure.cause.code == -1
        assert "getmempoolinfo failed" in str(failure)
    finally:
        _stop(server)


def test_unknown_method_reports_rpc_error():
    server = _start_test_server()
    try:
        with BitcoindRPCClient(server.url) as client:
            with pytest.raises(RemoteCallFailure) as exc_info:
                client.call("getnonsense")

        assert exc_info.value.cause.code == -32601
    finally:
        _stop(server)


def test_bad_credentials_report_http_status():
    server = _start_test_server(auth=("user", "pass"))
    try:
        with BitcoindRPCClient(server.url, auth=("user", "wrong")) as client:
            with pytest.raises(RemoteCallFailure) as exc_info:
                client.get_uptime()

        assert "401" in str(exc_info.value)
    finally:
        _stop(server)


def test_good_credentials_accepted():
    server = _start_test_server(auth=("user", "pass"))
    try:
        with BitcoindRPCClient(server.url, auth=("user", "pass")) as client:
            assert client.get_uptime() == 86400
    finally:
        _stop(server)


def test_connection_refused_becomes_remote_call_failure():
    server = _start_test_server()
    url = server.url
    _stop(server)

    with BitcoindRPCClient(url, timeout_seconds=2.0) as client:
        with pytest.raises(RemoteCallFailure) as exc_info:
            client.get_network_info()

    assert exc_info.value.operation == "getnetworkinfo"
    assert isinstance(exc_info.value.cause, httpx.TransportError)


def test_malformed_result_becomes_remote_call_failure():
    server = _start_test_server(responses={"getnettotals": {"timemillis": 1}})
    try:
        with BitcoindRPCClient(server.url) as client:
            with pytest.raises(RemoteCallFailure) as exc_info:
                client.get_net_totals()

        assert "malformed" in str(exc_info.value)
    finally:
        _stop(server)


def test_string_error_becomes_remote_call_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"result": None, "error": "Work queue depth exceeded", "id": 1})

    transport = httpx.MockTransport(handler)
    with BitcoindRPCClient("http://node:8332", transport=transport) as client:
        with pytest.raises(RemoteCallFailure) as exc_info:
            client.get_network_info()

        assert exc_info.value.operation == "getnetworkinfo"
        assert "Work queue depth exceeded" in str(exc_info.value)

        result = BitcoindCollector(client, BitcoinMetrics(CollectorRegistry())).collect()

    assert not result.ok
    assert result.error.operation == "getnetworkinfo"


def test_full_collection_over_rpc():
    server = _start_test_server(auth=("user", "pass"))
    try:
        metrics = BitcoinMetrics(CollectorRegistry())
        with BitcoindRPCClient(server.url, auth=("user", "pass")) as client:
            result = BitcoindCollector(client, metrics).collect()

        assert result.ok
        assert metrics.registry.get_sample_value("bitcoin_blocks") == 840000
        assert metrics.registry.get_sample_value("bitcoin_est_smart_fee_20") == 11000
        assert metrics.registry.get_sample_value("bitcoin_num_chaintips") == 2
    finally:
        _stop(server)


def test_client_name_includes_url():
    client = BitcoindRPCClient("http://localhost:8332/")
    assert "localhost:8332" in client.name()
    client.close()
