"""Terminal view using Rich. Node and pod usage tables, kubectl-top style."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from kmonitor import __version__
from kmonitor.metrics import ClusterSnapshot

log = logging.getLogger(__name__)

# Give up on --watch after this many failed fetches in a row
MAX_CONSECUTIVE_ERRORS = 5


def build_node_table(snapshot: ClusterSnapshot) -> Table:
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Node")
    table.add_column("CPU", justify="right")
    table.add_column("Memory", justify="right")

    for node in snapshot.nodes:
        table.add_row(node.name, node.cpu, node.memory)
    return table


def build_pod_table(snapshot: ClusterSnapshot, namespace: str = "") -> Table:
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Namespace", style="dim")
    table.add_column("Pod")
    table.add_column("Container")
    table.add_column("CPU", justify="right")
    table.add_column("Memory", justify="right")

    for pod in snapshot.pods:
        if namespace and pod.namespace != namespace:
            continue
        if not pod.containers:
            table.add_row(pod.namespace, pod.name, "[dim]-[/dim]", "", "")
            continue
        for i, c in enumerate(pod.containers):
            # Only label the first row of each pod to keep the table readable
            table.add_row(
                pod.namespace if i == 0 else "",
                pod.name if i == 0 else "",
                c.name,
                c.cpu,
                c.memory,
            )
    return table


def build_display(snapshot: ClusterSnapshot, source_name: str, namespace: str = "") -> Group:
    header = Text(f"  kmonitor v{__version__}  |  {source_name}", style="bold white on blue")
    header.append(f"\n  collected {snapshot.collected_at.strftime('%Y-%m-%d %H:%M:%S %Z')}", style="dim")

    pod_title = f"Pods ({namespace})" if namespace else "Pods"
    return Group(
        Panel(header, border_style="blue"),
        Panel(build_node_table(snapshot), title=f"Nodes ({len(snapshot.nodes)})", border_style="cyan"),
        Panel(build_pod_table(snapshot, namespace), title=pod_title, border_style="cyan"),
    )


def print_snapshot(
    snapshot: Optional[ClusterSnapshot],
    source_name: str,
    namespace: str = "",
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    if snapshot is None:
        console.print(f"[yellow]{source_name} has no snapshot yet, try again shortly.[/yellow]")
        return
    console.print(build_display(snapshot, source_name, namespace))


def run_watch(
    fetch: Callable[[], Optional[ClusterSnapshot]],
    source_name: str,
    refresh_interval: float = 5.0,
    namespace: str = "",
):
    console = Console()
    log.info("Starting watch: source=%s, refresh=%.1fs", source_name, refresh_interval)

    consecutive_errors = 0

    with Live(console=console, refresh_per_second=1, screen=True) as live:
        try:
            while True:
                try:
                    snapshot = fetch()
                    consecutive_errors = 0
                except Exception as e:
                    consecutive_errors += 1
                    log.warning("Fetch failed (attempt %d/%d): %s", consecutive_errors, MAX_CONSECUTIVE_ERRORS, e)
                    if consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
                        log.error("Giving up after %d failed fetches", MAX_CONSECUTIVE_ERRORS)
                        break
                    error_text = Text(
                        f"  Fetch error (retry {consecutive_errors}/{MAX_CONSECUTIVE_ERRORS}): {e}",
                        style="bold red",
                    )
                    live.update(Panel(error_text, border_style="red"))
                    time.sleep(refresh_interval)
                    continue

                if snapshot is None:
                    live.update(Panel(Text("  Waiting for first snapshot...", style="yellow")))
                else:
                    live.update(build_display(snapshot, source_name, namespace))
                time.sleep(refresh_interval)
        except KeyboardInterrupt:
            pass

    console.print("\n[dim]Watch stopped.[/dim]")
