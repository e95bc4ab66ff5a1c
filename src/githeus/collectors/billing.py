import time

from prometheus_client.core import GaugeMetricFamily

from githeus.collectors.base import BaseCollector
from githeus.dedup import DeduplicationStore, billing_key
from githeus.metrics import NAMESPACE, MetricDesc
from githeus.models import BillingItem, Entity, EntityKind, UsageItem
from githeus.normalizer import normalize_usage
from githeus.pagination import Deadline
from githeus.provider.base import GitHubAPI

BILLING_LABELS = (
    "type",
    "name",
    "product",
    "sku",
    "unit_type",
    "date",
    "organization_name",
    "repository_name",
)

USAGE = MetricDesc(
    f"{NAMESPACE}_billing_usage",
    "Quantity of the billed usage item in its unit type",
    BILLING_LABELS,
)
USAGE_GROSS_AMOUNT = MetricDesc(
    f"{NAMESPACE}_billing_usage_gross_amount",
    "Gross amount of the billed usage item",
    BILLING_LABELS,
)
USAGE_DISCOUNT_AMOUNT = MetricDesc(
    f"{NAMESPACE}_billing_usage_discount_amount",
    "Discount amount of the billed usage item",
    BILLING_LABELS,
)
USAGE_NET_AMOUNT = MetricDesc(
    f"{NAMESPACE}_billing_usage_net_amount",
    "Net amount of the billed usage item",
    BILLING_LABELS,
)
USAGE_PRICE_PER_UNIT = MetricDesc(
    f"{NAMESPACE}_billing_usage_price_per_unit",
    "Price per unit of the billed usage item",
    BILLING_LABELS,
)


def fetch_scope_usage(
    client: "GitHubAPI",
    scope: "Entity",
    timeout: "float | None" = None,
) -> "list[UsageItem]":
    """
    fetches the billing usage of one organization or enterprise.
    """
    if scope.kind is EntityKind.ENTERPRISE:
        return client.enterprise_billing_usage(scope.name, timeout=timeout)
    return client.org_billing_usage(scope.name, timeout=timeout)


class BillingCollector(BaseCollector):
    """
    BillingCollector exposes every usage item of the configured
    enterprises and organizations as a set of gauges.
    """

    name = "billing"
    DESCRIPTORS = (
        USAGE,
        USAGE_GROSS_AMOUNT,
        USAGE_DISCOUNT_AMOUNT,
        USAGE_NET_AMOUNT,
        USAGE_PRICE_PER_UNIT,
    )

    def _collect(
        self,
        families: "dict[str, GaugeMetricFamily]",
        deadline: "Deadline",
        dedup: "DeduplicationStore",
    ) -> "None":
        start = time.monotonic()
        with self._metrics.timed(self.name):
            items = self._billing_items(deadline)

        self._log.debug(
            "billing_fetched",
            count=len(items),
            duration=time.monotonic() - start,
        )

        for item in items:
            if not dedup.is_new(billing_key(item)):
                self._log.debug(
                    "billing_duplicate_skipped",
                    type=item.type,
                    name=item.name,
                    product=item.usage.product,
                    sku=item.usage.sku,
                    date=item.usage.date,
                )
                continue

            labels = item.labels()
            families[USAGE.name].add_metric(labels, item.usage.quantity)
            families[USAGE_GROSS_AMOUNT.name].add_metric(
                labels, item.usage.gross_amount
            )
            families[USAGE_DISCOUNT_AMOUNT.name].add_metric(
                labels, item.usage.discount_amount
            )
            families[USAGE_NET_AMOUNT.name].add_metric(labels, item.usage.net_amount)
            families[USAGE_PRICE_PER_UNIT.name].add_metric(
                labels, item.usage.price_per_unit
            )

    def _billing_items(self, deadline: "Deadline") -> "list[BillingItem]":
        items: "list[BillingItem]" = []

        for scope in self._resolver.scopes(self._target):
            try:
                usage = fetch_scope_usage(
                    self._client, scope, timeout=deadline.remaining()
                )
            except Exception:
                self._log.exception(
                    "billing_fetch_error",
                    type=scope.kind.value,
                    name=scope.name,
                )
                self._metrics.inc_failure(self.name)
                continue

            items.extend(normalize_usage(usage, scope.kind.value, scope.name))

        return items
