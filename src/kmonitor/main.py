"""
kmonitor entry point.

Usage:
    kmonitor serve                         Serve /api/metrics from metrics-server
    kmonitor serve --mock                  Serve simulated cluster metrics
    kmonitor top --url http://host:8081    Show a running server's snapshot
    kmonitor top --mock --watch            Live node/pod tables
"""

from __future__ import annotations

import logging
from typing import Optional

import click
from kubernetes.config import ConfigException

from kmonitor import __version__
from kmonitor.collector.base import MetricsSource
from kmonitor.collector.kube_source import KubeMetricsSource, load_api_client
from kmonitor.collector.mock_source import MockMetricsSource
from kmonitor.collector.periodic import MetricsCollector
from kmonitor.config import (
    DEFAULT_HOST,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_PORT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SHUTDOWN_TIMEOUT,
    ENV_PREFIX,
    Settings,
)


log = logging.getLogger("kmonitor")


def _build_source(mock: bool, kubeconfig: Optional[str]) -> MetricsSource:
    if mock:
        return MockMetricsSource()
    try:
        api_client = load_api_client(kubeconfig)
    except (ConfigException, OSError) as e:
        log.error("Error building config: %s", e)
        click.echo(f"Could not load cluster config: {e}", err=True)
        raise SystemExit(1)
    return KubeMetricsSource(api_client)


def _close(source):
    if hasattr(source, "close"):
        source.close()


@click.group()
@click.version_option(version=__version__, prog_name="kmonitor")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool):
    """kmonitor - Kubernetes node and pod usage monitor."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@cli.command()
@click.option("--mock", is_flag=True, default=False, help="Use a simulated cluster")
@click.option("--kubeconfig", default=None, type=click.Path(dir_okay=False),
              help="kubeconfig path, used when in-cluster config is unavailable")
@click.option("--interval", default=DEFAULT_INTERVAL_SECONDS, type=click.FloatRange(min=0, min_open=True),
              show_default=True, help="Collection interval in seconds")
@click.option("--request-timeout", default=DEFAULT_REQUEST_TIMEOUT, type=click.FloatRange(min=0, min_open=True),
              show_default=True, help="Timeout for each metrics-server call in seconds")
@click.option("--host", default=DEFAULT_HOST, show_default=True, help="Address to listen on")
@click.option("--port", default=DEFAULT_PORT, show_default=True, help="Port to listen on")
@click.option("--shutdown-timeout", default=DEFAULT_SHUTDOWN_TIMEOUT, show_default=True,
              help="Seconds to let in-flight requests finish on shutdown")
def serve(mock: bool, kubeconfig: Optional[str], interval: float, request_timeout: float,
          host: str, port: int, shutdown_timeout: float):
    """Collect metrics periodically and serve them at /api/metrics."""
    from kmonitor.service import run_server

    log.info("Starting kmonitor v%s...", __version__)
    settings = Settings(
        interval_seconds=interval,
        request_timeout=request_timeout,
        host=host,
        port=port,
        shutdown_timeout=shutdown_timeout,
    )
    source = _build_source(mock, kubeconfig)

    try:
        run_server(source, settings)
    except OSError as e:
        log.error("Error starting server: %s", e)
        click.echo(f"Error starting server on {host}:{port}: {e}", err=True)
        raise SystemExit(1)
    finally:
        _close(source)


@cli.command()
@click.option("--mock", is_flag=True, default=False, help="Use a simulated cluster")
@click.option("--url", default=None, help="Read from a running kmonitor server (e.g. http://localhost:8081)")
@click.option("--kubeconfig", default=None, type=click.Path(dir_okay=False),
              help="kubeconfig path, used when in-cluster config is unavailable")
@click.option("--namespace", "-n", default="", help="Only show pods in this namespace")
@click.option("--watch", "-w", is_flag=True, default=False, help="Keep refreshing until Ctrl+C")
@click.option("--interval", default=5.0, type=click.FloatRange(min=0, min_open=True),
              show_default=True, help="Refresh interval for --watch in seconds")
def top(mock: bool, url: Optional[str], kubeconfig: Optional[str], namespace: str, watch: bool, interval: float):
    """Show node and pod usage."""
    from kmonitor.dashboard.terminal import print_snapshot, run_watch

    if url:
        from kmonitor.client import SnapshotClient

        source = SnapshotClient(base_url=url)
        fetch = source.fetch
    else:
        source = _build_source(mock, kubeconfig)
        fetch = MetricsCollector(source).collect

    try:
        if watch:
            run_watch(fetch, source.name(), refresh_interval=interval, namespace=namespace)
        else:
            try:
                snapshot = fetch()
            except Exception as e:
                log.error("Fetch failed: %s", e)
                click.echo(f"Could not fetch metrics: {e}", err=True)
                raise SystemExit(1)
            print_snapshot(snapshot, source.name(), namespace=namespace)
    finally:
        _close(source)


def main():
    cli(auto_envvar_prefix=ENV_PREFIX)


if __name__ == "__main__":
    main()
