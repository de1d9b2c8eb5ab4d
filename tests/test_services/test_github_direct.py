from __future__ import annotations

from typing import Any

import pytest

from dependabot_helper.models.pull_request import MergeMethod
from dependabot_helper.services.integrations.base import (
    ForbiddenError,
    GithubApiError,
    NotFoundError,
    NotMergeableError,
    RateLimitedError,
    UnauthorizedError,
)
from dependabot_helper.services.integrations.github_direct import GithubDirectHost

API = "https://api.github.test"
REPO = f"{API}/repos/octo-org/app"


class _FakeResponse:
    def __init__(self, status_code: int, payload: Any, headers: dict[str, str] | None = None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = str(payload)

    def json(self) -> Any:
        return self._payload


class _FakeAsyncClient:
    routes: dict[tuple[str, str], Any] = {}
    requests: list[tuple[str, str, dict[str, Any]]] = []

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.kwargs = kwargs

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def _respond(self, method: str, url: str, kwargs: dict[str, Any]) -> _FakeResponse:
        self.requests.append((method, url, kwargs))
        route = self.routes.get((method, url))
        if route is None:
            return _FakeResponse(404, {"message": "Not Found"})
        if callable(route):
            return route(kwargs)
        return route

    async def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        return self._respond("GET", url, kwargs)

    async def post(self, url: str, **kwargs: Any) -> _FakeResponse:
        return self._respond("POST", url, kwargs)

    async def put(self, url: str, **kwargs: Any) -> _FakeResponse:
        return self._respond("PUT", url, kwargs)


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> type[_FakeAsyncClient]:
    monkeypatch.setattr("httpx.AsyncClient", _FakeAsyncClient)
    _FakeAsyncClient.routes = {}
    _FakeAsyncClient.requests = []
    return _FakeAsyncClient


def _host() -> GithubDirectHost:
    return GithubDirectHost(token="ghp_test", api_url=f"{API}/", graphql_url=f"{API}/graphql")


def _repo_payload(**extra: Any) -> dict[str, Any]:
    return {
        "id": 10,
        "name": "app",
        "owner": {"login": "octo-org"},
        "html_url": "https://github.com/octo-org/app",
        **extra,
    }


@pytest.mark.asyncio
async def test_repository_merge_flags_default_to_allowed(fake_client) -> None:
    fake_client.routes[("GET", REPO)] = _FakeResponse(200, _repo_payload(allow_squash_merge=False, private=True))

    repository = await _host().get_repository(owner="octo-org", name="app")

    assert repository.allow_merge_commit is True
    assert repository.allow_rebase_merge is True
    assert repository.allow_squash_merge is False
    assert repository.is_private is True
    _, _, kwargs = fake_client.requests[0]
    assert kwargs["headers"]["Authorization"] == "Bearer ghp_test"


@pytest.mark.asyncio
async def test_issue_listing_pages_until_short_page(fake_client) -> None:
    def _issues(kwargs: dict[str, Any]) -> _FakeResponse:
        page = kwargs["params"]["page"]
        if page == 1:
            return _FakeResponse(
                200,
                [
                    {"number": 5, "title": "Bump a", "html_url": "u5", "pull_request": {}},
                    {"number": 4, "title": "Dashboard", "html_url": "u4"},
                ],
            )
        return _FakeResponse(200, [{"number": 3, "title": "Bump b", "html_url": "u3", "pull_request": {}}])

    fake_client.routes[("GET", f"{REPO}/issues")] = _issues

    issues = await _host().list_issues(
        owner="octo-org", name="app", creator="dependabot[bot]", labels=["dependencies", "python"], page_size=2
    )

    assert [(issue.number, issue.is_pull_request) for issue in issues] == [(5, True), (4, False), (3, True)]
    params = [kwargs["params"] for _, _, kwargs in fake_client.requests]
    assert [p["page"] for p in params] == [1, 2]
    assert params[0]["labels"] == "dependencies,python"
    assert params[0]["creator"] == "dependabot[bot]"
    assert params[0]["state"] == "open"


@pytest.mark.asyncio
async def test_page_count_caps_listing(fake_client) -> None:
    fake_client.routes[("GET", f"{REPO}/pulls/1/reviews")] = _FakeResponse(
        200, [{"id": 1, "user": {"login": "a"}, "state": "APPROVED"}]
    )

    host = _host()
    reviews = await host._get_pages(f"{REPO}/pulls/1/reviews", page_size=1, page_count=3)

    assert len(reviews) == 3
    assert len(fake_client.requests) == 3


@pytest.mark.asyncio
async def test_reviews_are_normalized(fake_client) -> None:
    fake_client.routes[("GET", f"{REPO}/pulls/7/reviews")] = _FakeResponse(
        200,
        [
            {
                "id": 11,
                "user": {"login": "ci[bot]", "type": "Bot"},
                "author_association": "NONE",
                "state": "APPROVED",
                "submitted_at": "2024-05-01T10:00:00Z",
            },
            {"id": 12, "user": None, "state": "COMMENTED"},
        ],
    )

    reviews = await _host().list_reviews(owner="octo-org", name="app", number=7)

    assert reviews[0].user_is_bot is True
    assert reviews[0].submitted_at is not None and reviews[0].submitted_at.year == 2024
    assert reviews[1].user_login == "ghost"
    assert reviews[1].submitted_at is None


@pytest.mark.asyncio
async def test_branch_protection_merges_contexts_and_checks(fake_client) -> None:
    fake_client.routes[("GET", f"{REPO}/branches/main/protection")] = _FakeResponse(
        200,
        {
            "required_pull_request_reviews": {"required_approving_review_count": 0},
            "required_status_checks": {
                "contexts": ["ci/legacy"],
                "checks": [{"context": "ci/legacy"}, {"context": "build"}],
            },
        },
    )

    protection = await _host().get_branch_protection(owner="octo-org", name="app", branch="main")

    assert protection is not None
    assert protection.required_approving_review_count == 1
    assert protection.required_status_checks == ["ci/legacy", "build"]


@pytest.mark.asyncio
async def test_unprotected_branch_returns_none(fake_client) -> None:
    assert await _host().get_branch_protection(owner="octo-org", name="app", branch="main") is None


@pytest.mark.asyncio
async def test_check_suites_are_read_from_wrapped_payload(fake_client) -> None:
    fake_client.routes[("GET", f"{REPO}/commits/abc/check-suites")] = _FakeResponse(
        200,
        {"total_count": 1, "check_suites": [{"id": 3, "status": "completed", "conclusion": "success"}]},
    )

    (suite,) = await _host().list_check_suites(owner="octo-org", name="app", sha="abc")

    assert (suite.id, suite.status, suite.conclusion) == (3, "completed", "success")


@pytest.mark.asyncio
async def test_merge_sends_method_and_sha(fake_client) -> None:
    fake_client.routes[("PUT", f"{REPO}/pulls/9/merge")] = _FakeResponse(200, {"merged": True})

    await _host().merge_pull_request(owner="octo-org", name="app", number=9, method=MergeMethod.SQUASH, sha="abc")

    _, _, kwargs = fake_client.requests[0]
    assert kwargs["json"] == {"merge_method": "squash", "sha": "abc"}


@pytest.mark.asyncio
async def test_merge_405_is_not_mergeable(fake_client) -> None:
    fake_client.routes[("PUT", f"{REPO}/pulls/9/merge")] = _FakeResponse(
        405, {"message": "Pull Request is not mergeable"}
    )

    with pytest.raises(NotMergeableError):
        await _host().merge_pull_request(owner="octo-org", name="app", number=9, method=MergeMethod.MERGE)


@pytest.mark.asyncio
async def test_merge_405_for_disallowed_method_is_not_retryable(fake_client) -> None:
    fake_client.routes[("PUT", f"{REPO}/pulls/9/merge")] = _FakeResponse(
        405, {"message": "Squash merges are not allowed on this repository."}
    )

    with pytest.raises(GithubApiError) as exc_info:
        await _host().merge_pull_request(owner="octo-org", name="app", number=9, method=MergeMethod.SQUASH)

    assert not isinstance(exc_info.value, NotMergeableError)
    assert exc_info.value.status_code == 405


@pytest.mark.asyncio
async def test_merge_reported_as_not_merged(fake_client) -> None:
    fake_client.routes[("PUT", f"{REPO}/pulls/9/merge")] = _FakeResponse(200, {"merged": False, "message": "nope"})

    with pytest.raises(NotMergeableError):
        await _host().merge_pull_request(owner="octo-org", name="app", number=9, method=MergeMethod.MERGE)


@pytest.mark.asyncio
async def test_enable_auto_merge_uses_graphql(fake_client) -> None:
    fake_client.routes[("POST", f"{API}/graphql")] = _FakeResponse(200, {"data": {}})

    await _host().enable_auto_merge(node_id="PR_kw", method=MergeMethod.REBASE)

    _, _, kwargs = fake_client.requests[0]
    assert "enablePullRequestAutoMerge" in kwargs["json"]["query"]
    assert kwargs["json"]["variables"] == {"pullRequestId": "PR_kw", "mergeMethod": "REBASE"}


@pytest.mark.asyncio
async def test_enable_auto_merge_graphql_errors_raise(fake_client) -> None:
    fake_client.routes[("POST", f"{API}/graphql")] = _FakeResponse(
        200, {"errors": [{"message": "Auto merge is not allowed"}]}
    )

    with pytest.raises(GithubApiError, match="Auto merge is not allowed"):
        await _host().enable_auto_merge(node_id="PR_kw", method=MergeMethod.MERGE)


@pytest.mark.asyncio
async def test_dependabot_config_detection(fake_client) -> None:
    fake_client.routes[("GET", f"{REPO}/contents/.github/dependabot.yml")] = _FakeResponse(200, {"type": "file"})

    host = _host()
    assert await host.has_dependabot_config(owner="octo-org", name="app") is True
    assert await host.has_dependabot_config(owner="octo-org", name="other") is False


@pytest.mark.asyncio
async def test_rate_limits_from_core_resource(fake_client) -> None:
    fake_client.routes[("GET", f"{API}/rate_limit")] = _FakeResponse(
        200, {"resources": {"core": {"limit": 5000, "remaining": 12, "reset": 1700000000}}}
    )

    limits = await _host().get_rate_limits()

    assert (limits.limit, limits.remaining) == (5000, 12)
    assert limits.resets_at is not None and limits.resets_at.year == 2023


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "payload", "headers", "expected"),
    [
        (401, {"message": "Bad credentials"}, {}, UnauthorizedError),
        (403, {"message": "Resource not accessible"}, {}, ForbiddenError),
        (403, {"message": "denied"}, {"x-ratelimit-remaining": "0"}, RateLimitedError),
        (403, {"message": "API rate limit exceeded"}, {}, RateLimitedError),
        (429, {"message": "slow down"}, {}, RateLimitedError),
        (404, {"message": "Not Found"}, {}, NotFoundError),
        (500, {"message": "boom"}, {}, GithubApiError),
    ],
)
async def test_error_statuses_map_to_typed_errors(fake_client, status, payload, headers, expected) -> None:
    fake_client.routes[("GET", f"{API}/user")] = _FakeResponse(status, payload, headers)

    with pytest.raises(expected) as exc_info:
        await _host().get_current_user()

    assert exc_info.value.status_code == status
