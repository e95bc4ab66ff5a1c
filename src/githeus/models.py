from dataclasses import dataclass, field
from enum import Enum


class EntityKind(str, Enum):
    REPOSITORY = "repository"
    ORGANIZATION = "org"
    ENTERPRISE = "enterprise"


@dataclass(frozen=True, slots=True)
class Entity:
    """
    Entity is a resolved polling target. For repositories the
    name is the full "owner/name" string.
    """

    kind: "EntityKind"
    name: "str"

    @property
    def owner(self) -> "str":
        return self.name.split("/", 1)[0]

    @property
    def repo(self) -> "str":
        return self.name.split("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class Repository:
    owner: "str"
    name: "str"
    full_name: "str"

    @classmethod
    def from_api(cls, data: "dict") -> "Repository":
        owner = (data.get("owner") or {}).get("login", "")
        name = data.get("name", "")
        return cls(
            owner=owner,
            name=name,
            full_name=data.get("full_name") or f"{owner}/{name}",
        )


@dataclass(frozen=True, slots=True)
class Runner:
    """
    Runner is a self-hosted runner as listed for a repository,
    organization or enterprise.
    """

    id: "int"
    name: "str"
    os: "str"
    status: "str"
    busy: "bool"

    @classmethod
    def from_api(cls, data: "dict") -> "Runner":
        return cls(
            id=int(data.get("id", 0)),
            name=data.get("name", ""),
            os=data.get("os", ""),
            status=data.get("status", ""),
            busy=bool(data.get("busy", False)),
        )

    @property
    def online(self) -> "bool":
        return self.status == "online"


@dataclass(frozen=True, slots=True)
class UsageItem:
    """
    UsageItem is one raw line item of the enhanced billing
    usage endpoint. Numeric fields default to zero when the
    API omits them.
    """

    date: "str"
    product: "str"
    sku: "str"
    quantity: "float" = 0.0
    unit_type: "str" = ""
    price_per_unit: "float" = 0.0
    gross_amount: "float" = 0.0
    discount_amount: "float" = 0.0
    net_amount: "float" = 0.0
    organization_name: "str" = ""
    repository_name: "str" = ""

    @classmethod
    def from_api(cls, data: "dict") -> "UsageItem":
        return cls(
            date=data.get("date") or "",
            product=data.get("product") or "",
            sku=data.get("sku") or "",
            quantity=float(data.get("quantity") or 0),
            unit_type=data.get("unitType") or "",
            price_per_unit=float(data.get("pricePerUnit") or 0),
            gross_amount=float(data.get("grossAmount") or 0),
            discount_amount=float(data.get("discountAmount") or 0),
            net_amount=float(data.get("netAmount") or 0),
            organization_name=data.get("organizationName") or "",
            repository_name=data.get("repositoryName") or "",
        )


@dataclass(frozen=True, slots=True)
class BillingItem:
    """
    BillingItem is a UsageItem labelled with the billing scope
    (type is "org" or "enterprise") it was fetched for.
    """

    type: "str"
    name: "str"
    usage: "UsageItem"

    def labels(self) -> "list[str]":
        return [
            self.type,
            self.name,
            self.usage.product,
            self.usage.sku,
            self.usage.unit_type,
            self.usage.date,
            self.usage.organization_name,
            self.usage.repository_name,
        ]


# legacy billing shapes, kept for the v4 metric names


@dataclass(slots=True)
class ActionBilling:
    type: "str"
    name: "str"
    total_minutes_used: "float" = 0.0
    total_paid_minutes_used: "float" = 0.0
    included_minutes: "float" = 0.0
    # operating system -> minutes
    minutes_used_breakdown: "dict[str, int]" = field(default_factory=dict)


@dataclass(slots=True)
class PackageBilling:
    type: "str"
    name: "str"
    total_gigabytes_bandwidth_used: "float" = 0.0
    total_paid_gigabytes_bandwidth_used: "float" = 0.0
    included_gigabytes_bandwidth: "float" = 0.0


@dataclass(slots=True)
class StorageBilling:
    type: "str"
    name: "str"
    days_left_in_billing_cycle: "int" = 0
    estimated_paid_storage_for_month: "float" = 0.0
    estimated_storage_for_month: "float" = 0.0


@dataclass(slots=True)
class LegacyBilling:
    """
    LegacyBilling groups the three buckets produced by one
    classification pass over a scope's usage items.
    """

    actions: "ActionBilling"
    packages: "PackageBilling"
    storage: "StorageBilling"
