import threading
import time
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest
import respx

from githeus.pagination import DeadlineExceeded
from githeus.provider.github import GITHUB_BASE_URL, GitHubClient


def runners_json(*ids: "int") -> "dict":
    return {
        "total_count": len(ids),
        "runners": [
            {
                "id": i,
                "name": f"runner-{i}",
                "os": "linux",
                "status": "online",
                "busy": i % 2 == 0,
                "labels": [{"id": 1, "name": "self-hosted", "type": "read-only"}],
            }
            for i in ids
        ],
    }


def next_link(path: "str", page: "int") -> "dict[str, str]":
    return {"Link": f'<{GITHUB_BASE_URL}{path}?per_page=50&page={page}>; rel="next"'}


class TestGitHubClientRunners:
    @respx.mock
    def test_follows_link_header(self) -> "None":
        path = "/orgs/acme/actions/runners"
        route = respx.get(f"{GITHUB_BASE_URL}{path}").mock(
            side_effect=[
                httpx.Response(200, json=runners_json(1, 2), headers=next_link(path, 2)),
                httpx.Response(200, json=runners_json(3)),
            ]
        )

        client = GitHubClient(token="ghp_test")
        first = client.list_org_runners("acme", page=1, per_page=50)
        second = client.list_org_runners("acme", page=first.next_page, per_page=50)

        assert [r.id for r in first.items] == [1, 2]
        assert first.next_page == 2
        assert first.items[1].busy is True
        assert not hasattr(first.items[0], "labels")
        assert [r.id for r in second.items] == [3]
        assert second.next_page is None

        request = route.calls[1].request
        assert request.url.params["page"] == "2"
        assert request.url.params["per_page"] == "50"
        assert request.headers["Authorization"] == "Bearer ghp_test"
        assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"

    @respx.mock
    def test_repo_and_enterprise_paths(self) -> "None":
        repo = respx.get(f"{GITHUB_BASE_URL}/repos/acme/api/actions/runners").mock(
            return_value=httpx.Response(200, json=runners_json(1))
        )
        enterprise = respx.get(
            f"{GITHUB_BASE_URL}/enterprises/big/actions/runners"
        ).mock(return_value=httpx.Response(200, json=runners_json(2)))

        client = GitHubClient(token="ghp_test")

        assert [r.id for r in client.list_runners("acme", "api").items] == [1]
        assert [r.id for r in client.list_enterprise_runners("big").items] == [2]
        assert repo.calls.last.request.url.params["per_page"] == "200"
        assert enterprise.called

    @respx.mock
    def test_raises_on_error_status(self) -> "None":
        respx.get(f"{GITHUB_BASE_URL}/orgs/acme/actions/runners").mock(
            return_value=httpx.Response(500, json={"message": "boom"})
        )

        client = GitHubClient(token="ghp_test")

        with pytest.raises(httpx.HTTPStatusError):
            client.list_org_runners("acme")

    @respx.mock
    def test_timeout_propagates(self) -> "None":
        respx.get(f"{GITHUB_BASE_URL}/orgs/acme/actions/runners").mock(
            side_effect=httpx.ReadTimeout("timed out")
        )

        client = GitHubClient(token="ghp_test")

        with pytest.raises(httpx.TimeoutException):
            client.list_org_runners("acme", timeout=0.5)


def repos_json(*names: "str") -> "list[dict]":
    return [
        {
            "name": name,
            "full_name": f"acme/{name}",
            "owner": {"login": "acme"},
            "fork": name.endswith("-fork"),
        }
        for name in names
    ]


class TestGitHubClientRepositories:
    @respx.mock
    def test_lists_organization_repositories_with_forks(self) -> "None":
        path = "/orgs/acme/repos"
        route = respx.get(f"{GITHUB_BASE_URL}{path}").mock(
            side_effect=[
                httpx.Response(
                    200, json=repos_json("api", "api-fork"), headers=next_link(path, 2)
                ),
                httpx.Response(200, json=repos_json("web")),
            ]
        )

        client = GitHubClient(token="ghp_test")
        first = client.list_repositories_by_owner("acme")
        second = client.list_repositories_by_owner("acme", page=first.next_page)

        assert [r.full_name for r in first.items] == ["acme/api", "acme/api-fork"]
        assert first.items[0].owner == "acme"
        assert first.next_page == 2
        assert [r.full_name for r in second.items] == ["acme/web"]
        assert second.next_page is None

        params = route.calls[0].request.url.params
        assert params["type"] == "all"
        assert params["per_page"] == "50"
        assert route.calls[1].request.url.params["page"] == "2"

    @respx.mock
    def test_falls_back_to_user_repositories(self) -> "None":
        respx.get(f"{GITHUB_BASE_URL}/orgs/octocat/repos").mock(
            return_value=httpx.Response(404, json={"message": "Not Found"})
        )
        user = respx.get(f"{GITHUB_BASE_URL}/users/octocat/repos").mock(
            return_value=httpx.Response(
                200,
                json=[
                    {
                        "name": "hello",
                        "full_name": "octocat/hello",
                        "owner": {"login": "octocat"},
                    }
                ],
            )
        )

        client = GitHubClient(token="ghp_test")
        page = client.list_repositories_by_owner("octocat")

        assert [r.full_name for r in page.items] == ["octocat/hello"]
        assert user.calls.last.request.url.params["type"] == "all"

    @respx.mock
    def test_listing_error_other_than_not_found_raises(self) -> "None":
        respx.get(f"{GITHUB_BASE_URL}/orgs/acme/repos").mock(
            return_value=httpx.Response(403, json={"message": "Forbidden"})
        )
        user = respx.get(f"{GITHUB_BASE_URL}/users/acme/repos")

        client = GitHubClient(token="ghp_test")

        with pytest.raises(httpx.HTTPStatusError):
            client.list_repositories_by_owner("acme")
        assert not user.called

    @respx.mock
    def test_get_repository_follows_rename(self) -> "None":
        respx.get(f"{GITHUB_BASE_URL}/repos/acme/old-api").mock(
            return_value=httpx.Response(
                301, headers={"Location": f"{GITHUB_BASE_URL}/repositories/42"}
            )
        )
        respx.get(f"{GITHUB_BASE_URL}/repositories/42").mock(
            return_value=httpx.Response(
                200,
                json={"name": "api", "full_name": "acme/api", "owner": {"login": "acme"}},
            )
        )

        client = GitHubClient(token="ghp_test")

        assert client.get_repository("acme", "old-api").full_name == "acme/api"

    @respx.mock
    def test_get_repository(self) -> "None":
        respx.get(f"{GITHUB_BASE_URL}/repos/acme/api").mock(
            return_value=httpx.Response(
                200,
                json={"name": "api", "full_name": "acme/api", "owner": {"login": "acme"}},
            )
        )

        client = GitHubClient(token="ghp_test")
        repo = client.get_repository("acme", "api")

        assert repo.full_name == "acme/api"


class TestGitHubClientBillingUsage:
    @respx.mock
    def test_org_usage(self) -> "None":
        respx.get(f"{GITHUB_BASE_URL}/organizations/acme/settings/billing/usage").mock(
            return_value=httpx.Response(
                200,
                json={
                    "usageItems": [
                        {
                            "date": "2026-10-01T00:00:00Z",
                            "product": "actions",
                            "sku": "actions_linux",
                            "quantity": 120,
                            "unitType": "minutes",
                            "pricePerUnit": 0.008,
                            "grossAmount": 0.96,
                            "discountAmount": 0.96,
                            "netAmount": 0,
                            "organizationName": "acme",
                            "repositoryName": "acme/api",
                        }
                    ]
                },
            )
        )

        client = GitHubClient(token="ghp_test")
        items = client.org_billing_usage("acme")

        assert len(items) == 1
        assert items[0].product == "actions"
        assert items[0].quantity == 120.0
        assert items[0].repository_name == "acme/api"

    @respx.mock
    def test_enterprise_usage_without_items(self) -> "None":
        respx.get(f"{GITHUB_BASE_URL}/enterprises/big/settings/billing/usage").mock(
            return_value=httpx.Response(200, json={})
        )

        client = GitHubClient(token="ghp_test")

        assert client.enterprise_billing_usage("big") == []

    @respx.mock
    def test_custom_base_url(self) -> "None":
        respx.get(
            "https://ghe.example.com/api/v3/organizations/acme/settings/billing/usage"
        ).mock(return_value=httpx.Response(200, json={"usageItems": []}))

        client = GitHubClient(
            token="ghp_test", base_url="https://ghe.example.com/api/v3/"
        )

        assert client.org_billing_usage("acme") == []

    @respx.mock
    def test_invalid_json_raises(self) -> "None":
        respx.get(f"{GITHUB_BASE_URL}/organizations/acme/settings/billing/usage").mock(
            return_value=httpx.Response(200, content=b"<html>")
        )

        client = GitHubClient(token="ghp_test")

        with pytest.raises(ValueError):
            client.org_billing_usage("acme")


USAGE_BODY = b'{"usageItems": []}'


class TrickleHandler(BaseHTTPRequestHandler):
    """
    answers every GET with USAGE_BODY, one byte per byte_delay
    seconds, so no single read ever waits long.
    """

    byte_delay = 0.0

    def do_GET(self) -> "None":
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(USAGE_BODY)))
        self.end_headers()
        try:
            for i in range(len(USAGE_BODY)):
                self.wfile.write(USAGE_BODY[i : i + 1])
                self.wfile.flush()
                time.sleep(self.byte_delay)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format: "str", *args: "object") -> "None":
        pass


def serve(byte_delay: "float") -> "Iterator[str]":
    handler = type("Handler", (TrickleHandler,), {"byte_delay": byte_delay})
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def slow_server() -> "Iterator[str]":
    yield from serve(byte_delay=0.1)


@pytest.fixture
def fast_server() -> "Iterator[str]":
    yield from serve(byte_delay=0.0)


class TestGitHubClientCallBudget:
    def test_slow_body_is_cut_at_the_call_budget(self, slow_server: "str") -> "None":
        client = GitHubClient(token="ghp_test", base_url=slow_server)

        start = time.monotonic()
        with pytest.raises(DeadlineExceeded):
            client.org_billing_usage("acme", timeout=0.5)
        elapsed = time.monotonic() - start
        client.close()

        # the full body takes ~1.8s to arrive
        assert elapsed < 1.2

    def test_body_within_budget_is_parsed(self, fast_server: "str") -> "None":
        client = GitHubClient(token="ghp_test", base_url=fast_server)

        assert client.org_billing_usage("acme", timeout=5.0) == []
        client.close()
