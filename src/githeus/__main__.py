import signal
import threading

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, start_http_server

from githeus.cli import parse_args
from githeus.collectors.base import BaseCollector
from githeus.collectors.billing import BillingCollector
from githeus.collectors.legacy_billing import LegacyBillingCollector
from githeus.collectors.runner import RunnerCollector
from githeus.config import Config
from githeus.logging import setup_logging
from githeus.metrics import ExporterMetrics
from githeus.provider.base import GitHubAPI
from githeus.provider.github import GitHubClient

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9504' or '0.0.0.0:9504'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def build_collectors(
    config: "Config",
    client: "GitHubAPI",
    registry: "CollectorRegistry" = REGISTRY,
) -> "list[BaseCollector]":
    """
    creates the enabled collectors and registers them, together
    with the shared self metrics, in the given registry.
    """
    metrics = ExporterMetrics(registry=registry)
    target = config.target
    collectors: "list[BaseCollector]" = []

    if config.collector_billing:
        collectors.append(BillingCollector(client, metrics, target))
    if config.collector_billing_legacy:
        collectors.append(LegacyBillingCollector(client, metrics, target))
    if config.collector_runners:
        collectors.append(RunnerCollector(client, metrics, target))

    for collector in collectors:
        registry.register(collector)
        logger.info("collector_enabled", collector=collector.name)

    return collectors


def main() -> "None":
    config = parse_args()
    setup_logging(config.log_level, config.log_format)

    if not config.github_enabled:
        raise SystemExit("No GitHub token configured. Set GITHUB_TOKEN.")

    if not config.has_targets:
        raise SystemExit(
            "No targets configured. Set --github.org, --github.enterprise "
            "or --github.repo."
        )

    client = GitHubClient(
        token=config.github_token,
        base_url=config.github_url,
        timeout=config.github_timeout,
    )

    if not build_collectors(config, client):
        raise SystemExit("No collectors enabled.")

    host, port = _parse_listen_address(config.listen_address)
    start_http_server(port, addr=host)
    logger.info("metrics_server_started", host=host, port=port)

    stop = threading.Event()
    # for SIGINT and SIGTERM, release the main thread so the
    # client is closed before exiting
    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, lambda *_: stop.set())

    try:
        stop.wait()
    finally:
        logger.info("shutting_down")
        client.close()
        logger.info("shutdown_complete")


if __name__ == "__main__":
    main()
