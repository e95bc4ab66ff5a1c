from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

from githeus.models import Repository, Runner, UsageItem

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    Page is one page of a listing call. next_page is None once
    the server stops advertising a following page.
    """

    items: "list[T]" = field(default_factory=list)
    next_page: "int | None" = None


class GitHubAPI(Protocol):
    """
    GitHubAPI is the upstream surface consumed by the collectors.

    Every call takes an optional timeout in seconds that bounds the
    whole call, body included, and raises on transport, status or
    decode errors.
    """

    def get_repository(
        self, owner: "str", name: "str", timeout: "float | None" = None
    ) -> "Repository": ...

    def list_repositories_by_owner(
        self,
        owner: "str",
        page: "int" = 1,
        per_page: "int" = 50,
        timeout: "float | None" = None,
    ) -> "Page[Repository]": ...

    def list_runners(
        self,
        owner: "str",
        repo: "str",
        page: "int" = 1,
        per_page: "int" = 200,
        timeout: "float | None" = None,
    ) -> "Page[Runner]": ...

    def list_org_runners(
        self,
        org: "str",
        page: "int" = 1,
        per_page: "int" = 50,
        timeout: "float | None" = None,
    ) -> "Page[Runner]": ...

    def list_enterprise_runners(
        self,
        enterprise: "str",
        page: "int" = 1,
        per_page: "int" = 50,
        timeout: "float | None" = None,
    ) -> "Page[Runner]": ...

    def org_billing_usage(
        self, org: "str", timeout: "float | None" = None
    ) -> "list[UsageItem]": ...

    def enterprise_billing_usage(
        self, enterprise: "str", timeout: "float | None" = None
    ) -> "list[UsageItem]": ...
