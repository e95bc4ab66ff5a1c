import pytest
from prometheus_client import CollectorRegistry

from githeus.metrics import ExporterMetrics


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def metrics(registry: "CollectorRegistry") -> "ExporterMetrics":
    """
    self metrics bound to the fresh registry.
    """
    return ExporterMetrics(registry=registry)
