from collections.abc import Iterator

import structlog
from prometheus_client.core import GaugeMetricFamily

from githeus.config import Target
from githeus.dedup import DeduplicationStore
from githeus.metrics import ExporterMetrics, MetricDesc
from githeus.pagination import Deadline
from githeus.provider.base import GitHubAPI
from githeus.resolver import EntityResolver

logger = structlog.get_logger()


class BaseCollector:
    """
    BaseCollector implements the prometheus_client custom collector
    protocol shared by every metric family.

    describe() only depends on the class level DESCRIPTORS. collect()
    runs one scrape: it creates the scrape scoped deadline and
    deduplication store, lets the subclass fill the gauge families
    and yields them. Errors are counted and logged, never raised
    to the registry.
    """

    name: "str" = ""
    DESCRIPTORS: "tuple[MetricDesc, ...]" = ()

    def __init__(
        self,
        client: "GitHubAPI",
        metrics: "ExporterMetrics",
        target: "Target",
    ) -> "None":
        self._client = client
        self._metrics = metrics
        self._target = target
        self._resolver = EntityResolver(client, metrics, self.name)
        self._log = logger.bind(collector=self.name)
        metrics.register_collector(self.name)

    def describe(self) -> "list[GaugeMetricFamily]":
        return [desc.family() for desc in self.DESCRIPTORS]

    def collect(self) -> "Iterator[GaugeMetricFamily]":
        families = {desc.name: desc.family() for desc in self.DESCRIPTORS}

        try:
            self._collect(
                families, Deadline(self._target.timeout), DeduplicationStore()
            )
        except Exception:
            self._log.exception("collect_error")
            self._metrics.inc_failure(self.name)

        yield from families.values()

    def _collect(
        self,
        families: "dict[str, GaugeMetricFamily]",
        deadline: "Deadline",
        dedup: "DeduplicationStore",
    ) -> "None":
        raise NotImplementedError
