"""
maps raw billing usage items into the exporter's metric shapes.

Two shapes are produced from the same input:
 - billing items: one per usage item, every raw field kept and
 labelled with the scope it was fetched for.
 - legacy buckets: actions minutes, packages bandwidth and git lfs
 storage totals as exposed by the pre-usage-API metric names.
"""

from collections.abc import Iterable
from enum import Enum

from githeus.models import (
    ActionBilling,
    BillingItem,
    LegacyBilling,
    PackageBilling,
    StorageBilling,
    UsageItem,
)

BYTES_PER_GIGABYTE = 1024 * 1024 * 1024

OS_UBUNTU = "UBUNTU"
OS_WINDOWS = "WINDOWS"
OS_MACOS = "MACOS"


class Bucket(str, Enum):
    ACTIONS = "actions"
    PACKAGES = "packages"
    STORAGE = "storage"


# product -> (bucket, accepted unit types)
_BUCKET_RULES: "dict[str, tuple[Bucket, frozenset[str]]]" = {
    "actions": (Bucket.ACTIONS, frozenset({"minutes"})),
    "packages": (Bucket.PACKAGES, frozenset({"bytes", "gigabytes"})),
    "git_lfs": (
        Bucket.STORAGE,
        frozenset({"bytes", "gigabytes", "gigabytehours"}),
    ),
}


def normalize_usage(
    items: "Iterable[UsageItem] | None",
    scope_type: "str",
    scope_name: "str",
) -> "list[BillingItem]":
    """
    labels every usage item with its scope. Order and granularity
    of the input are preserved.
    """
    return [
        BillingItem(type=scope_type, name=scope_name, usage=item)
        for item in items or []
    ]


def extract_os_from_sku(sku: "str") -> "str":
    """
    derives the runner operating system from a SKU string, or ""
    when the SKU names none of the known systems.
    """
    lowered = sku.lower()
    if "linux" in lowered:
        return OS_UBUNTU
    if "windows" in lowered:
        return OS_WINDOWS
    # "mac" also covers "macos"
    if "mac" in lowered:
        return OS_MACOS
    return ""


def classify(item: "UsageItem") -> "Bucket | None":
    """
    returns the legacy bucket the item belongs to, None for items
    no legacy metric covers.
    """
    rule = _BUCKET_RULES.get(item.product.lower())
    if rule is None:
        return None

    bucket, unit_types = rule
    if item.unit_type.lower() not in unit_types:
        return None
    return bucket


def _gigabytes(item: "UsageItem") -> "float":
    if item.unit_type.lower() == "bytes":
        return item.quantity / BYTES_PER_GIGABYTE
    return item.quantity


def legacy_billing(
    items: "Iterable[UsageItem] | None",
    scope_type: "str",
    scope_name: "str",
    days_left_in_cycle: "int" = 0,
) -> "LegacyBilling":
    """
    accumulates usage items into the three legacy buckets in a
    single pass. Paid amounts come from the net amount and included
    amounts from the discount amount, which approximates the old
    dedicated billing endpoints.
    """
    actions = ActionBilling(type=scope_type, name=scope_name)
    packages = PackageBilling(type=scope_type, name=scope_name)
    storage = StorageBilling(
        type=scope_type,
        name=scope_name,
        days_left_in_billing_cycle=days_left_in_cycle,
    )

    for item in items or []:
        bucket = classify(item)

        if bucket is Bucket.ACTIONS:
            actions.total_minutes_used += item.quantity
            actions.total_paid_minutes_used += item.net_amount
            actions.included_minutes += item.discount_amount

            os_name = extract_os_from_sku(item.sku)
            if os_name:
                breakdown = actions.minutes_used_breakdown
                breakdown[os_name] = breakdown.get(os_name, 0) + int(item.quantity)

        elif bucket is Bucket.PACKAGES:
            packages.total_gigabytes_bandwidth_used += _gigabytes(item)
            packages.total_paid_gigabytes_bandwidth_used += item.net_amount
            packages.included_gigabytes_bandwidth += item.discount_amount

        elif bucket is Bucket.STORAGE:
            storage.estimated_storage_for_month += _gigabytes(item)
            storage.estimated_paid_storage_for_month += item.net_amount

    return LegacyBilling(actions=actions, packages=packages, storage=storage)
