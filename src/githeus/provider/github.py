import time

import httpx
import structlog

from githeus.models import Repository, Runner, UsageItem
from githeus.pagination import DeadlineExceeded
from githeus.provider.base import Page

logger = structlog.get_logger()

GITHUB_BASE_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"


def _next_page(resp: "httpx.Response") -> "int | None":
    """
    reads the page number advertised by the rel="next" entry of
    the Link header. None when there is no following page.
    """
    link = resp.links.get("next")
    if not link or not link.get("url"):
        return None

    page = httpx.URL(link["url"]).params.get("page")
    if not page:
        return None

    try:
        return int(page)
    except ValueError:
        logger.warning("github_invalid_next_page", url=link["url"])
        return None


class GitHubClient:
    """
    GitHubClient implements the GitHubAPI protocol on top of a
    synchronous httpx client. It raises httpx errors on transport
    failures or non-2xx responses and leaves retry/skip decisions
    to the caller.
    """

    def __init__(
        self,
        token: "str",
        base_url: "str" = GITHUB_BASE_URL,
        timeout: "float" = 10.0,
        transport: "httpx.BaseTransport | None" = None,
    ) -> "None":
        headers: "dict[str, str]" = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client: "httpx.Client" = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
            transport=transport,
            # renamed repositories answer with a 301 to the new location
            follow_redirects=True,
        )

    def close(self) -> "None":
        """
        closes the underlying HTTP client.
        """
        self._client.close()

    def _get(
        self,
        path: "str",
        params: "dict[str, str | int] | None" = None,
        timeout: "float | None" = None,
    ) -> "httpx.Response":
        """
        performs a GET bounded by timeout seconds in total. httpx
        applies its timeout to each connect and read separately, so
        the body is streamed and the expiry checked between chunks.
        """
        # httpx treats timeout=None as "no timeout", so only pass
        # an explicit budget through
        kwargs: "dict" = {}
        expires_at: "float | None" = None
        if timeout is not None:
            kwargs["timeout"] = timeout
            expires_at = time.monotonic() + timeout

        logger.debug("github_request", path=path, params=params)
        with self._client.stream("GET", path, params=params, **kwargs) as resp:
            resp.raise_for_status()

            body = bytearray()
            # raw bytes, the rebuilt response decodes Content-Encoding itself
            for chunk in resp.iter_raw():
                if expires_at is not None and time.monotonic() > expires_at:
                    raise DeadlineExceeded(f"GET {path} exceeded {timeout}s")
                body.extend(chunk)

        return httpx.Response(
            resp.status_code,
            headers=resp.headers,
            content=bytes(body),
            request=resp.request,
        )

    def get_repository(
        self, owner: "str", name: "str", timeout: "float | None" = None
    ) -> "Repository":
        resp = self._get(f"/repos/{owner}/{name}", timeout=timeout)
        return Repository.from_api(resp.json())

    def list_repositories_by_owner(
        self,
        owner: "str",
        page: "int" = 1,
        per_page: "int" = 50,
        timeout: "float | None" = None,
    ) -> "Page[Repository]":
        """
        lists every repository of an organization, forks included.
        Owners that are not organizations answer 404 there and are
        listed through the user endpoint instead.
        """
        params: "dict[str, str | int]" = {
            "type": "all",
            "page": page,
            "per_page": per_page,
        }
        try:
            resp = self._get(f"/orgs/{owner}/repos", params=params, timeout=timeout)
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                raise
            logger.debug("github_owner_not_organization", owner=owner)
            resp = self._get(f"/users/{owner}/repos", params=params, timeout=timeout)

        return Page(
            items=[Repository.from_api(r) for r in resp.json() or []],
            next_page=_next_page(resp),
        )

    def _list_runners(
        self,
        path: "str",
        page: "int",
        per_page: "int",
        timeout: "float | None",
    ) -> "Page[Runner]":
        resp = self._get(
            path,
            params={"page": page, "per_page": per_page},
            timeout=timeout,
        )
        data = resp.json()
        return Page(
            items=[Runner.from_api(r) for r in data.get("runners") or []],
            next_page=_next_page(resp),
        )

    def list_runners(
        self,
        owner: "str",
        repo: "str",
        page: "int" = 1,
        per_page: "int" = 200,
        timeout: "float | None" = None,
    ) -> "Page[Runner]":
        return self._list_runners(
            f"/repos/{owner}/{repo}/actions/runners", page, per_page, timeout
        )

    def list_org_runners(
        self,
        org: "str",
        page: "int" = 1,
        per_page: "int" = 50,
        timeout: "float | None" = None,
    ) -> "Page[Runner]":
        return self._list_runners(
            f"/orgs/{org}/actions/runners", page, per_page, timeout
        )

    def list_enterprise_runners(
        self,
        enterprise: "str",
        page: "int" = 1,
        per_page: "int" = 50,
        timeout: "float | None" = None,
    ) -> "Page[Runner]":
        return self._list_runners(
            f"/enterprises/{enterprise}/actions/runners", page, per_page, timeout
        )

    def _billing_usage(
        self, path: "str", timeout: "float | None"
    ) -> "list[UsageItem]":
        data = self._get(path, timeout=timeout).json()
        return [UsageItem.from_api(i) for i in data.get("usageItems") or []]

    def org_billing_usage(
        self, org: "str", timeout: "float | None" = None
    ) -> "list[UsageItem]":
        return self._billing_usage(
            f"/organizations/{org}/settings/billing/usage", timeout
        )

    def enterprise_billing_usage(
        self, enterprise: "str", timeout: "float | None" = None
    ) -> "list[UsageItem]":
        return self._billing_usage(
            f"/enterprises/{enterprise}/settings/billing/usage", timeout
        )
