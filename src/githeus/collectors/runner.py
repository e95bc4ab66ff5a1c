from collections.abc import Callable

from prometheus_client.core import GaugeMetricFamily

from githeus.collectors.base import BaseCollector
from githeus.dedup import DeduplicationStore, runner_key
from githeus.metrics import NAMESPACE, MetricDesc
from githeus.models import Entity, EntityKind, Runner
from githeus.pagination import (
    REPO_RUNNERS_PER_PAGE,
    SCOPE_RUNNERS_PER_PAGE,
    Deadline,
    fetch_all,
)
from githeus.provider.base import Page

LABELS = ("owner", "id", "name", "os", "status")

REPO_ONLINE = MetricDesc(
    f"{NAMESPACE}_runner_repo_online",
    "Static metrics of runner is online or not",
    LABELS,
)
REPO_BUSY = MetricDesc(
    f"{NAMESPACE}_runner_repo_busy",
    "1 if the runner is busy, 0 otherwise",
    LABELS,
)
ENTERPRISE_ONLINE = MetricDesc(
    f"{NAMESPACE}_runner_enterprise_online",
    "Static metrics of runner is online or not",
    LABELS,
)
ENTERPRISE_BUSY = MetricDesc(
    f"{NAMESPACE}_runner_enterprise_busy",
    "1 if the runner is busy, 0 otherwise",
    LABELS,
)
ORG_ONLINE = MetricDesc(
    f"{NAMESPACE}_runner_org_online",
    "Static metrics of runner is online or not",
    LABELS,
)
ORG_BUSY = MetricDesc(
    f"{NAMESPACE}_runner_org_busy",
    "1 if the runner is busy, 0 otherwise",
    LABELS,
)

# entity kind -> (online, busy)
_FAMILIES: "dict[EntityKind, tuple[MetricDesc, MetricDesc]]" = {
    EntityKind.REPOSITORY: (REPO_ONLINE, REPO_BUSY),
    EntityKind.ENTERPRISE: (ENTERPRISE_ONLINE, ENTERPRISE_BUSY),
    EntityKind.ORGANIZATION: (ORG_ONLINE, ORG_BUSY),
}

_CATEGORIES: "dict[EntityKind, str]" = {
    EntityKind.REPOSITORY: "runner_repo",
    EntityKind.ENTERPRISE: "runner_enterprise",
    EntityKind.ORGANIZATION: "runner_org",
}


class RunnerCollector(BaseCollector):
    """
    RunnerCollector exposes the online and busy state of the
    self-hosted runners registered to the configured repositories,
    enterprises and organizations.
    """

    name = "runner"
    DESCRIPTORS = (
        REPO_ONLINE,
        REPO_BUSY,
        ENTERPRISE_ONLINE,
        ENTERPRISE_BUSY,
        ORG_ONLINE,
        ORG_BUSY,
    )

    def _collect(
        self,
        families: "dict[str, GaugeMetricFamily]",
        deadline: "Deadline",
        dedup: "DeduplicationStore",
    ) -> "None":
        with self._metrics.timed(_CATEGORIES[EntityKind.REPOSITORY]):
            repos = self._resolver.repositories(self._target, deadline.remaining)
            records = self._runners(repos, deadline)
        self._emit(families, records, dedup)

        scopes = self._resolver.scopes(self._target)
        for kind in (EntityKind.ENTERPRISE, EntityKind.ORGANIZATION):
            with self._metrics.timed(_CATEGORIES[kind]):
                records = self._runners(
                    [s for s in scopes if s.kind is kind], deadline
                )
            self._emit(families, records, dedup)

    def _runners(
        self,
        entities: "list[Entity]",
        deadline: "Deadline",
    ) -> "list[tuple[Entity, Runner]]":
        records: "list[tuple[Entity, Runner]]" = []

        for entity in entities:
            try:
                runners = fetch_all(
                    self._lister(entity, deadline), self._per_page(entity)
                )
            except Exception:
                self._log.exception(
                    "runner_fetch_error",
                    type=entity.kind.value,
                    name=entity.name,
                )
                self._metrics.inc_failure(self.name)
                continue

            self._log.debug(
                "runners_fetched",
                type=entity.kind.value,
                name=entity.name,
                count=len(runners),
            )
            records.extend((entity, runner) for runner in runners)

        return records

    @staticmethod
    def _per_page(entity: "Entity") -> "int":
        if entity.kind is EntityKind.REPOSITORY:
            return REPO_RUNNERS_PER_PAGE
        return SCOPE_RUNNERS_PER_PAGE

    def _lister(
        self,
        entity: "Entity",
        deadline: "Deadline",
    ) -> "Callable[[int, int], Page[Runner]]":
        if entity.kind is EntityKind.REPOSITORY:
            return lambda page, per_page: self._client.list_runners(
                entity.owner,
                entity.repo,
                page=page,
                per_page=per_page,
                timeout=deadline.remaining(),
            )
        if entity.kind is EntityKind.ENTERPRISE:
            return lambda page, per_page: self._client.list_enterprise_runners(
                entity.name,
                page=page,
                per_page=per_page,
                timeout=deadline.remaining(),
            )
        return lambda page, per_page: self._client.list_org_runners(
            entity.name,
            page=page,
            per_page=per_page,
            timeout=deadline.remaining(),
        )

    def _emit(
        self,
        families: "dict[str, GaugeMetricFamily]",
        records: "list[tuple[Entity, Runner]]",
        dedup: "DeduplicationStore",
    ) -> "None":
        for entity, runner in records:
            if not dedup.is_new(runner_key(entity, runner)):
                self._log.debug(
                    "runner_duplicate_skipped",
                    type=entity.kind.value,
                    owner=entity.name,
                    id=runner.id,
                )
                continue

            online, busy = _FAMILIES[entity.kind]
            labels = [
                entity.name,
                str(runner.id),
                runner.name,
                runner.os,
                runner.status,
            ]
            families[online.name].add_metric(labels, 1.0 if runner.online else 0.0)
            families[busy.name].add_metric(labels, 1.0 if runner.busy else 0.0)
