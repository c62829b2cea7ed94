"""
bitcoind-exporter entry point.

Usage:
    bitcoind-exporter --rpc-user u --rpc-password p     Serve /metrics on :9332
    bitcoind-exporter --cookie-file ~/.bitcoin/.cookie  Same, cookie auth
    bitcoind-exporter --mock                            Serve canned node data
    bitcoind-exporter check --mock                      One-shot collection table
"""

from __future__ import annotations

import logging

import click

from bitcoind_exporter import __version__
from bitcoind_exporter.collector.base import NodeStatusClient
from bitcoind_exporter.collector.bitcoind_collector import BitcoindCollector
from bitcoind_exporter.collector.mock_client import MockNodeClient
from bitcoind_exporter.collector.rpc_client import DEFAULT_RPC_URL, BitcoindRPCClient
from bitcoind_exporter.config import (
    DEFAULT_HOST,
    DEFAULT_METRICS_PATH,
    DEFAULT_PORT,
    ConfigError,
    ExporterConfig,
)
from bitcoind_exporter.metrics import BitcoinMetrics


log = logging.getLogger("bitcoind_exporter")


def _make_client(config: ExporterConfig, mock: bool) -> NodeStatusClient:
    if mock:
        return MockNodeClient()
    try:
        auth = config.rpc_auth()
    except ConfigError as e:
        raise click.ClickException(str(e))
    return BitcoindRPCClient(config.rpc_url, auth=auth, timeout_seconds=config.rpc_timeout)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="bitcoind-exporter")
@click.option("--rpc-url", default=DEFAULT_RPC_URL, envvar="BITCOIN_RPC_URL", show_default=True,
              help="bitcoind JSON-RPC endpoint")
@click.option("--rpc-user", default=None, envvar="BITCOIN_RPC_USER", help="RPC username")
@click.option("--rpc-password", default=None, envvar="BITCOIN_RPC_PASSWORD", help="RPC password")
@click.option("--cookie-file", default=None, envvar="BITCOIN_RPC_COOKIE",
              type=click.Path(dir_okay=False), help="Path to bitcoind's .cookie file")
@click.option("--rpc-timeout", default=30.0, envvar="BITCOIN_RPC_TIMEOUT", show_default=True,
              help="Per-call RPC timeout in seconds")
@click.option("--host", default=DEFAULT_HOST, envvar="EXPORTER_HOST", show_default=True,
              help="Address to serve metrics on")
@click.option("--port", default=DEFAULT_PORT, envvar="EXPORTER_PORT", show_default=True,
              help="Port to serve metrics on")
@click.option("--metrics-path", default=DEFAULT_METRICS_PATH, show_default=True,
              help="HTTP path for scrapes")
@click.option("--mock", is_flag=True, default=False, help="Use a simulated node instead of RPC")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx, rpc_url: str, rpc_user: str, rpc_password: str, cookie_file: str,
        rpc_timeout: float, host: str, port: int, metrics_path: str, mock: bool, verbose: bool):
    """bitcoind-exporter - Prometheus metrics for a Bitcoin node."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.ensure_object(dict)
    ctx.obj["mock"] = mock
    ctx.obj["config"] = ExporterConfig(
        rpc_url=rpc_url,
        rpc_user=rpc_user,
        rpc_password=rpc_password,
        cookie_file=cookie_file,
        rpc_timeout=rpc_timeout,
        host=host,
        port=port,
        metrics_path=metrics_path,
    )

    # No subcommand: serve scrapes
    if ctx.invoked_subcommand is None:
        from bitcoind_exporter.server import serve

        config = ctx.obj["config"]
        client = _make_client(config, mock)
        collector = BitcoindCollector(client, BitcoinMetrics())
        log.info("Exporting %s", client.name())
        try:
            serve(collector, config.host, config.port, config.metrics_path)
        finally:
            client.close()


@cli.command()
@click.pass_context
def check(ctx):
    """Run a single collection and print every sample."""
    from bitcoind_exporter.dashboard.terminal import print_collection

    client = _make_client(ctx.obj["config"], ctx.obj["mock"])
    metrics = BitcoinMetrics()

    try:
        result = BitcoindCollector(client, metrics).collect()
        ok = print_collection(result, metrics.registry, client.name())
    finally:
        client.close()

    if not ok:
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
