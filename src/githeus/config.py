import os
from dataclasses import dataclass, field

DEFAULT_GITHUB_URL = "https://api.github.com"


def _split_env(name: "str") -> "list[str]":
    return [v.strip() for v in os.environ.get(name, "").split(",") if v.strip()]


@dataclass(frozen=True)
class Target:
    """
    Target is the set of entities to poll, fixed for the lifetime
    of the process.
    """

    # "owner/name" patterns, the name part may hold globs
    repos: "tuple[str, ...]" = ()
    orgs: "tuple[str, ...]" = ()
    enterprises: "tuple[str, ...]" = ()
    # time budget of one collect call in seconds
    timeout: "float" = 10.0


@dataclass
class Config:
    # listen_address: format ":9504" or
    # "0.0.0.0:9504"
    listen_address: "str" = ":9504"
    log_level: "str" = "info"
    # console or json
    log_format: "str" = "console"

    github_token: "str" = ""
    github_url: "str" = DEFAULT_GITHUB_URL
    github_timeout: "float" = 10.0

    repos: "list[str]" = field(default_factory=list)
    orgs: "list[str]" = field(default_factory=list)
    enterprises: "list[str]" = field(default_factory=list)

    collector_billing: "bool" = True
    collector_billing_legacy: "bool" = False
    collector_runners: "bool" = True

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            github_token=os.environ.get("GITHUB_TOKEN", ""),
            github_url=os.environ.get("GITHUB_URL", "") or DEFAULT_GITHUB_URL,
            repos=_split_env("GITHUB_REPOS"),
            orgs=_split_env("GITHUB_ORGS"),
            enterprises=_split_env("GITHUB_ENTERPRISES"),
        )

    @property
    def github_enabled(self) -> "bool":
        return bool(self.github_token)

    @property
    def has_targets(self) -> "bool":
        return bool(self.repos or self.orgs or self.enterprises)

    @property
    def target(self) -> "Target":
        return Target(
            repos=tuple(self.repos),
            orgs=tuple(self.orgs),
            enterprises=tuple(self.enterprises),
            timeout=self.github_timeout,
        )
