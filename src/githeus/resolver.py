from collections.abc import Callable
from fnmatch import fnmatchcase

import structlog

from githeus.config import Target
from githeus.metrics import ExporterMetrics
from githeus.models import Entity, EntityKind, Repository
from githeus.pagination import REPOSITORIES_PER_PAGE, fetch_all
from githeus.provider.base import GitHubAPI

logger = structlog.get_logger()

_WILDCARDS = ("*", "?", "[")


class InvalidPatternError(ValueError):
    pass


def split_pattern(pattern: "str") -> "tuple[str, str]":
    """
    splits an "owner/name-glob" pattern, raising InvalidPatternError
    unless it has exactly two non-empty segments.
    """
    parts = pattern.split("/")
    if len(parts) != 2 or not all(parts):
        raise InvalidPatternError(f"invalid repository pattern: {pattern!r}")
    return parts[0], parts[1]


def has_wildcard(pattern: "str") -> "bool":
    return any(w in pattern for w in _WILDCARDS)


def match_repository(pattern: "str", full_name: "str") -> "bool":
    """
    anchored, case-sensitive glob match of a repository full name.
    """
    return fnmatchcase(full_name, pattern)


class EntityResolver:
    """
    EntityResolver expands the configured target into concrete
    entities. Organizations and enterprises map to themselves,
    repository patterns are matched against the repositories the
    owner has upstream.

    A pattern that cannot be parsed or listed is skipped and
    counted as a failure of the owning collector.
    """

    def __init__(
        self,
        client: "GitHubAPI",
        metrics: "ExporterMetrics",
        collector: "str",
    ) -> "None":
        self._client = client
        self._metrics = metrics
        self._collector = collector

    def scopes(self, target: "Target") -> "list[Entity]":
        """
        returns enterprises first, then organizations.
        """
        return [
            Entity(EntityKind.ENTERPRISE, name) for name in target.enterprises
        ] + [Entity(EntityKind.ORGANIZATION, name) for name in target.orgs]

    def repositories(
        self,
        target: "Target",
        timeout: "Callable[[], float] | None" = None,
    ) -> "list[Entity]":
        """
        resolves every repository pattern. timeout, when given, is
        asked for the budget of each upstream call.
        """
        entities: "list[Entity]" = []
        seen: "set[str]" = set()

        for pattern in target.repos:
            try:
                owner, name = split_pattern(pattern)
            except InvalidPatternError:
                logger.error(
                    "invalid_repository_pattern",
                    collector=self._collector,
                    pattern=pattern,
                )
                self._metrics.inc_failure(self._collector)
                continue

            try:
                repos = self._list(owner, name, timeout)
            except Exception:
                logger.exception(
                    "repository_listing_error",
                    collector=self._collector,
                    pattern=pattern,
                )
                self._metrics.inc_failure(self._collector)
                continue

            for repo in repos:
                if not match_repository(pattern, repo.full_name):
                    if not has_wildcard(name):
                        # exact lookups return the canonical name, which
                        # may differ in case or after a rename
                        logger.debug(
                            "repository_pattern_mismatch",
                            collector=self._collector,
                            pattern=pattern,
                            full_name=repo.full_name,
                        )
                    continue
                if repo.full_name in seen:
                    continue

                seen.add(repo.full_name)
                entities.append(Entity(EntityKind.REPOSITORY, repo.full_name))

        return entities

    def resolve(
        self,
        target: "Target",
        timeout: "Callable[[], float] | None" = None,
    ) -> "list[Entity]":
        return self.scopes(target) + self.repositories(target, timeout)

    def _list(
        self,
        owner: "str",
        name: "str",
        timeout: "Callable[[], float] | None",
    ) -> "list[Repository]":
        def budget() -> "float | None":
            return timeout() if timeout is not None else None

        # without a wildcard the repository is looked up directly
        if not has_wildcard(name):
            return [self._client.get_repository(owner, name, timeout=budget())]

        return fetch_all(
            lambda page, per_page: self._client.list_repositories_by_owner(
                owner, page=page, per_page=per_page, timeout=budget()
            ),
            REPOSITORIES_PER_PAGE,
        )
