"""Terminal view of one collection using Rich."""

from __future__ import annotations

import logging
from typing import Iterator, Optional, Tuple

from prometheus_client import CollectorRegistry
from rich.console import Console
from rich.table import Table
from rich.text import Text

from bitcoind_exporter import __version__
from bitcoind_exporter.collector.bitcoind_collector import CollectionResult

log = logging.getLogger(__name__)


def iter_samples(registry: CollectorRegistry) -> Iterator[Tuple[str, str, float]]:
    """Yield (name, labels, value) for every sample, skipping _created."""
    for family in registry.collect():
        for sample in family.samples:
            if sample.name.endswith("_created"):
                continue
            labels = ", ".join(f'{k}="{v}"' for k, v in sorted(sample.labels.items()))
            yield sample.name, labels, sample.value


def _format_value(value: float) -> str:
    if float(value).is_integer() and abs(value) < 1e15:
        return f"{int(value):,}"
    return f"{value:,.8g}"


def build_table(registry: CollectorRegistry, source_name: str) -> Table:
    table = Table(
        title=f"bitcoind-exporter v{__version__}  |  {source_name}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Metric", style="dim")
    table.add_column("Labels")
    table.add_column("Value", justify="right")

    for name, labels, value in iter_samples(registry):
        table.add_row(name, labels, _format_value(value))
    return table


def print_collection(
    result: CollectionResult,
    registry: CollectorRegistry,
    source_name: str,
    console: Optional[Console] = None,
) -> bool:
    """Print the outcome of one collection. Returns True on success."""
    console = console or Console()

    if not result.ok:
        log.debug("Collection from %s failed", source_name)
        console.print(Text(f"Collection failed: {result.error}", style="bold red"))
        return False

    console.print(build_table(registry, source_name))
    return True
