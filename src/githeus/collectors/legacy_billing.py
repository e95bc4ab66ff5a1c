import calendar
from collections.abc import Callable
from datetime import date, datetime, timezone

from prometheus_client.core import GaugeMetricFamily

from githeus.collectors.base import BaseCollector
from githeus.collectors.billing import fetch_scope_usage
from githeus.config import Target
from githeus.dedup import DeduplicationStore
from githeus.metrics import NAMESPACE, ExporterMetrics, MetricDesc
from githeus.models import LegacyBilling
from githeus.normalizer import Bucket, legacy_billing
from githeus.pagination import Deadline
from githeus.provider.base import GitHubAPI

LABELS = ("type", "name")

MINUTES_USED = MetricDesc(
    f"{NAMESPACE}_action_billing_minutes_used",
    "Total action minutes used for this type",
    LABELS,
)
MINUTES_USED_BREAKDOWN = MetricDesc(
    f"{NAMESPACE}_action_billing_minutes_used_breakdown",
    "Total action minutes used for this type broken down by operating system",
    LABELS + ("os",),
)
PAID_MINUTES = MetricDesc(
    f"{NAMESPACE}_action_billing_paid_minutes",
    "Total paid minutes used for this type",
    LABELS,
)
INCLUDED_MINUTES = MetricDesc(
    f"{NAMESPACE}_action_billing_included_minutes",
    "Included minutes for this type",
    LABELS,
)
BANDWIDTH_USED = MetricDesc(
    f"{NAMESPACE}_package_billing_gigabytes_bandwidth_used",
    "Total bandwidth used by this type in Gigabytes",
    LABELS,
)
BANDWIDTH_PAID = MetricDesc(
    f"{NAMESPACE}_package_billing_paid_gigabytes_bandwidth_used",
    "Total paid bandwidth used by this type in Gigabytes",
    LABELS,
)
BANDWIDTH_INCLUDED = MetricDesc(
    f"{NAMESPACE}_package_billing_included_gigabytes_bandwidth",
    "Included bandwidth for this type in Gigabytes",
    LABELS,
)
DAYS_LEFT = MetricDesc(
    f"{NAMESPACE}_storage_billing_days_left_in_cycle",
    "Days left within this billing cycle for this type",
    LABELS,
)
ESTIMATED_PAID_STORAGE = MetricDesc(
    f"{NAMESPACE}_storage_billing_estimated_paid_storage_for_month",
    "Estimated paid storage for this month for this type",
    LABELS,
)
ESTIMATED_STORAGE = MetricDesc(
    f"{NAMESPACE}_storage_billing_estimated_storage_for_month",
    "Estimated total storage for this month for this type",
    LABELS,
)


def days_left_in_month(today: "date") -> "int":
    """
    usage based billing runs per calendar month.
    """
    return calendar.monthrange(today.year, today.month)[1] - today.day


def _utc_today() -> "date":
    return datetime.now(timezone.utc).date()


class LegacyBillingCollector(BaseCollector):
    """
    LegacyBillingCollector keeps the action, package and storage
    billing metrics of the retired billing endpoints alive for
    dashboards that still use them. Values are derived from the
    usage endpoint: paid amounts map to the net amount and included
    amounts to the discount amount, so they only approximate the
    old numbers.
    """

    name = "billing_legacy"
    DESCRIPTORS = (
        MINUTES_USED,
        MINUTES_USED_BREAKDOWN,
        PAID_MINUTES,
        INCLUDED_MINUTES,
        BANDWIDTH_USED,
        BANDWIDTH_PAID,
        BANDWIDTH_INCLUDED,
        DAYS_LEFT,
        ESTIMATED_PAID_STORAGE,
        ESTIMATED_STORAGE,
    )

    def __init__(
        self,
        client: "GitHubAPI",
        metrics: "ExporterMetrics",
        target: "Target",
        today: "Callable[[], date]" = _utc_today,
    ) -> "None":
        super().__init__(client, metrics, target)
        self._today = today

    def _collect(
        self,
        families: "dict[str, GaugeMetricFamily]",
        deadline: "Deadline",
        dedup: "DeduplicationStore",
    ) -> "None":
        with self._metrics.timed(self.name):
            records = self._legacy_billing(deadline)

        self._log.debug("legacy_billing_fetched", count=len(records))

        for record in records:
            self._add_actions(families, record, dedup)
            self._add_packages(families, record, dedup)
            self._add_storage(families, record, dedup)

    def _legacy_billing(self, deadline: "Deadline") -> "list[LegacyBilling]":
        days_left = days_left_in_month(self._today())
        records: "list[LegacyBilling]" = []

        # one usage fetch per scope feeds all three buckets
        for scope in self._resolver.scopes(self._target):
            try:
                usage = fetch_scope_usage(
                    self._client, scope, timeout=deadline.remaining()
                )
            except Exception:
                self._log.exception(
                    "legacy_billing_fetch_error",
                    type=scope.kind.value,
                    name=scope.name,
                )
                self._metrics.inc_failure(self.name)
                continue

            records.append(
                legacy_billing(usage, scope.kind.value, scope.name, days_left)
            )

        return records

    def _is_new(
        self,
        dedup: "DeduplicationStore",
        bucket: "Bucket",
        type_: "str",
        name: "str",
    ) -> "bool":
        if dedup.is_new(dedup.make_key(bucket.value, type_, name)):
            return True

        self._log.debug(
            "legacy_billing_duplicate_skipped",
            bucket=bucket.value,
            type=type_,
            name=name,
        )
        return False

    def _add_actions(
        self,
        families: "dict[str, GaugeMetricFamily]",
        record: "LegacyBilling",
        dedup: "DeduplicationStore",
    ) -> "None":
        actions = record.actions
        if not self._is_new(dedup, Bucket.ACTIONS, actions.type, actions.name):
            return

        labels = [actions.type, actions.name]
        families[MINUTES_USED.name].add_metric(labels, actions.total_minutes_used)
        families[PAID_MINUTES.name].add_metric(
            labels, actions.total_paid_minutes_used
        )
        families[INCLUDED_MINUTES.name].add_metric(labels, actions.included_minutes)

        for os_name, minutes in actions.minutes_used_breakdown.items():
            families[MINUTES_USED_BREAKDOWN.name].add_metric(
                labels + [os_name], float(minutes)
            )

    def _add_packages(
        self,
        families: "dict[str, GaugeMetricFamily]",
        record: "LegacyBilling",
        dedup: "DeduplicationStore",
    ) -> "None":
        packages = record.packages
        if not self._is_new(dedup, Bucket.PACKAGES, packages.type, packages.name):
            return

        labels = [packages.type, packages.name]
        families[BANDWIDTH_USED.name].add_metric(
            labels, packages.total_gigabytes_bandwidth_used
        )
        families[BANDWIDTH_PAID.name].add_metric(
            labels, packages.total_paid_gigabytes_bandwidth_used
        )
        families[BANDWIDTH_INCLUDED.name].add_metric(
            labels, packages.included_gigabytes_bandwidth
        )

    def _add_storage(
        self,
        families: "dict[str, GaugeMetricFamily]",
        record: "LegacyBilling",
        dedup: "DeduplicationStore",
    ) -> "None":
        storage = record.storage
        if not self._is_new(dedup, Bucket.STORAGE, storage.type, storage.name):
            return

        labels = [storage.type, storage.name]
        families[DAYS_LEFT.name].add_metric(
            labels, float(storage.days_left_in_billing_cycle)
        )
        families[ESTIMATED_PAID_STORAGE.name].add_metric(
            labels, storage.estimated_paid_storage_for_month
        )
        families[ESTIMATED_STORAGE.name].add_metric(
            labels, storage.estimated_storage_for_month
        )
