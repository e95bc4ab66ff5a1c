import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram
from prometheus_client.core import GaugeMetricFamily

NAMESPACE = "github"


@dataclass(frozen=True, slots=True)
class MetricDesc:
    """
    MetricDesc is the static description of one gauge family a
    collector can emit.
    """

    name: "str"
    documentation: "str"
    labels: "tuple[str, ...]"

    def family(self) -> "GaugeMetricFamily":
        """
        returns a new, empty gauge family for this descriptor.
        """
        return GaugeMetricFamily(
            self.name, self.documentation, labels=list(self.labels)
        )


class ExporterMetrics:
    """
    owns the exporter's self metrics: upstream request failures
    and request durations, both labelled by collector. An instance
    is created once per process and handed to every collector.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._failures: "Counter" = Counter(
            f"{NAMESPACE}_request_failures_total",
            "Number of failed requests to the GitHub API per collector",
            ["collector"],
            registry=registry,
        )
        self._duration: "Histogram" = Histogram(
            f"{NAMESPACE}_request_duration_seconds",
            "Histogram of latencies for requests to the GitHub API per collector",
            ["collector"],
            registry=registry,
        )

    def register_collector(self, collector: "str") -> "None":
        """
        exposes a zero failure count for the collector before its
        first failure.
        """
        self._failures.labels(collector=collector).inc(0)

    def inc_failure(self, collector: "str") -> "None":
        self._failures.labels(collector=collector).inc()

    def observe_duration(self, category: "str", duration_seconds: "float") -> "None":
        self._duration.labels(collector=category).observe(duration_seconds)

    @contextmanager
    def timed(self, category: "str") -> "Iterator[None]":
        """
        observes the wrapped block's duration under category, also
        when the block raises.
        """
        start = time.monotonic()
        try:
            yield
        finally:
            self.observe_duration(category, time.monotonic() - start)
