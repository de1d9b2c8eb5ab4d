from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import httpx

from dependabot_helper.models.github import (
    BranchProtection,
    CheckRun,
    CheckSuite,
    CombinedStatus,
    CommitStatus,
    Issue,
    PullRequestDetail,
    RateLimits,
    Repository,
    Review,
    User,
)
from dependabot_helper.models.pull_request import MergeMethod
from dependabot_helper.services.integrations.base import (
    ForbiddenError,
    GithubApiError,
    NotFoundError,
    NotMergeableError,
    RateLimitedError,
    UnauthorizedError,
)

ENABLE_AUTO_MERGE_MUTATION = """
mutation EnableAutoMerge($pullRequestId: ID!, $mergeMethod: PullRequestMergeMethod!) {
  enablePullRequestAutoMerge(input: {pullRequestId: $pullRequestId, mergeMethod: $mergeMethod}) {
    pullRequest {
      number
    }
  }
}
"""

DEPENDABOT_CONFIG_PATH = ".github/dependabot.yml"


def _error_message(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return resp.text
    if isinstance(payload, dict):
        return str(payload.get("message") or "")
    return ""


def _method_not_allowed(message: str) -> bool:
    # e.g. "Squash merges are not allowed on this repository."
    return "not allowed" in message.lower()


def _raise_for_status(resp: httpx.Response, *, merge: bool = False) -> None:
    status = resp.status_code
    if status < 400:
        return
    message = _error_message(resp)
    if status == 401:
        raise UnauthorizedError(status, message)
    if status == 403:
        if resp.headers.get("x-ratelimit-remaining") == "0" or "rate limit" in message.lower():
            raise RateLimitedError(status, message)
        raise ForbiddenError(status, message)
    if status == 404:
        raise NotFoundError(status, message)
    if status == 429:
        raise RateLimitedError(status, message)
    if merge and status == 405 and not _method_not_allowed(message):
        raise NotMergeableError(status, message)
    raise GithubApiError(status, message)


def _to_user(data: dict[str, Any]) -> User:
    return User(
        id=int(data["id"]),
        login=str(data["login"]),
        type=str(data.get("type") or "User"),
        avatar_url=str(data.get("avatar_url") or ""),
    )


def _to_repository(data: dict[str, Any]) -> Repository:
    return Repository(
        id=int(data["id"]),
        name=str(data["name"]),
        owner=str(data["owner"]["login"]),
        html_url=str(data["html_url"]),
        fork=bool(data.get("fork", False)),
        private=bool(data.get("private", False)),
        visibility=data.get("visibility"),
        # These flags are only returned to users with push access.
        allow_merge_commit=data.get("allow_merge_commit") is not False,
        allow_rebase_merge=data.get("allow_rebase_merge") is not False,
        allow_squash_merge=data.get("allow_squash_merge") is not False,
    )


def _to_review(data: dict[str, Any]) -> Review:
    user = data.get("user") or {}
    submitted_at = data.get("submitted_at")
    return Review(
        id=int(data["id"]),
        user_login=str(user.get("login") or "ghost"),
        user_is_bot=user.get("type") == "Bot",
        author_association=str(data.get("author_association") or "NONE"),
        state=str(data.get("state") or ""),
        submitted_at=datetime.fromisoformat(submitted_at.replace("Z", "+00:00")) if submitted_at else None,
    )


def _to_branch_protection(data: dict[str, Any]) -> BranchProtection:
    reviews = data.get("required_pull_request_reviews") or {}
    checks = data.get("required_status_checks") or {}
    contexts: list[str] = list(checks.get("contexts") or [])
    for check in checks.get("checks") or []:
        context = check.get("context")
        if context and context not in contexts:
            contexts.append(context)
    return BranchProtection(
        required_approving_review_count=reviews.get("required_approving_review_count"),
        required_status_checks=contexts,
    )


class GithubDirectHost:
    def __init__(
        self,
        *,
        token: str,
        api_url: str = "https://api.github.com",
        graphql_url: str = "https://api.github.com/graphql",
        timeout_seconds: float = 20.0,
    ) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._graphql_url = graphql_url
        self._timeout_seconds = timeout_seconds

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _repo_url(self, owner: str, name: str) -> str:
        return f"{self._api_url}/repos/{owner}/{name}"

    async def _get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> Any:
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            resp = await client.get(url, headers=self._headers(), params=params)
        _raise_for_status(resp)
        return resp.json()

    async def _get_pages(
        self,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        items_key: Optional[str] = None,
        page_size: int = 100,
        page_count: int = 10,
    ) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            for page in range(1, page_count + 1):
                resp = await client.get(
                    url,
                    headers=self._headers(),
                    params={**(params or {}), "per_page": page_size, "page": page},
                )
                _raise_for_status(resp)
                payload = resp.json()
                batch = (payload.get(items_key) or []) if items_key else payload
                items.extend(batch)
                if len(batch) < page_size:
                    break
        return items

    async def get_user(self, *, login: str) -> User:
        return _to_user(await self._get_json(f"{self._api_url}/users/{login}"))

    async def get_current_user(self) -> User:
        return _to_user(await self._get_json(f"{self._api_url}/user"))

    async def get_organizations_for_current_user(self) -> list[User]:
        orgs = await self._get_pages(f"{self._api_url}/user/orgs")
        return [_to_user({**org, "type": "Organization"}) for org in orgs]

    async def get_repository(self, *, owner: str, name: str) -> Repository:
        return _to_repository(await self._get_json(self._repo_url(owner, name)))

    async def list_repositories_for_org(self, *, owner: str) -> list[Repository]:
        repos = await self._get_pages(f"{self._api_url}/orgs/{owner}/repos", params={"type": "all"})
        return [_to_repository(repo) for repo in repos]

    async def list_repositories_for_user(self, *, owner: str) -> list[Repository]:
        repos = await self._get_pages(f"{self._api_url}/users/{owner}/repos", params={"type": "owner"})
        return [_to_repository(repo) for repo in repos]

    async def list_repositories_for_current_user(self) -> list[Repository]:
        repos = await self._get_pages(f"{self._api_url}/user/repos", params={"affiliation": "owner"})
        return [_to_repository(repo) for repo in repos]

    async def get_branch_protection(self, *, owner: str, name: str, branch: str) -> Optional[BranchProtection]:
        try:
            data = await self._get_json(f"{self._repo_url(owner, name)}/branches/{branch}/protection")
        except NotFoundError:
            return None
        return _to_branch_protection(data)

    async def list_issues(
        self,
        *,
        owner: str,
        name: str,
        creator: str,
        labels: Sequence[str],
        state: str = "open",
        page_size: int = 100,
        page_count: int = 10,
    ) -> list[Issue]:
        params: dict[str, Any] = {"creator": creator, "state": state, "filter": "all"}
        if labels:
            params["labels"] = ",".join(labels)
        issues = await self._get_pages(
            f"{self._repo_url(owner, name)}/issues",
            params=params,
            page_size=page_size,
            page_count=page_count,
        )
        return [
            Issue(
                number=int(issue["number"]),
                title=str(issue.get("title") or ""),
                html_url=str(issue.get("html_url") or ""),
                is_pull_request="pull_request" in issue,
            )
            for issue in issues
        ]

    async def get_pull_request(self, *, owner: str, name: str, number: int) -> PullRequestDetail:
        data = await self._get_json(f"{self._repo_url(owner, name)}/pulls/{number}")
        return PullRequestDetail(
            number=int(data["number"]),
            title=str(data.get("title") or ""),
            html_url=str(data["html_url"]),
            head_sha=str(data["head"]["sha"]),
            base_ref=str(data["base"]["ref"]),
            node_id=str(data["node_id"]),
            draft=bool(data.get("draft", False)),
            mergeable=data.get("mergeable"),
        )

    async def get_combined_status(self, *, owner: str, name: str, sha: str) -> CombinedStatus:
        data = await self._get_json(f"{self._repo_url(owner, name)}/commits/{sha}/status")
        return CombinedStatus(
            state=str(data.get("state") or "pending"),
            total_count=int(data.get("total_count") or 0),
            statuses=[
                CommitStatus(context=str(status["context"]), state=str(status.get("state") or ""))
                for status in data.get("statuses") or []
            ],
        )

    async def list_check_suites(self, *, owner: str, name: str, sha: str) -> list[CheckSuite]:
        suites = await self._get_pages(
            f"{self._repo_url(owner, name)}/commits/{sha}/check-suites",
            items_key="check_suites",
        )
        return [
            CheckSuite(id=int(suite["id"]), status=suite.get("status"), conclusion=suite.get("conclusion"))
            for suite in suites
        ]

    async def list_check_runs(self, *, owner: str, name: str, suite_id: int) -> list[CheckRun]:
        runs = await self._get_pages(
            f"{self._repo_url(owner, name)}/check-suites/{suite_id}/check-runs",
            items_key="check_runs",
        )
        return [
            CheckRun(
                id=int(run["id"]),
                name=str(run["name"]),
                status=run.get("status"),
                conclusion=run.get("conclusion"),
            )
            for run in runs
        ]

    async def list_reviews(self, *, owner: str, name: str, number: int) -> list[Review]:
        reviews = await self._get_pages(f"{self._repo_url(owner, name)}/pulls/{number}/reviews")
        return [_to_review(review) for review in reviews]

    async def create_review(self, *, owner: str, name: str, number: int, event: str = "APPROVE") -> None:
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            resp = await client.post(
                f"{self._repo_url(owner, name)}/pulls/{number}/reviews",
                headers=self._headers(),
                json={"event": event},
            )
        _raise_for_status(resp)

    async def merge_pull_request(
        self,
        *,
        owner: str,
        name: str,
        number: int,
        method: MergeMethod,
        sha: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {"merge_method": method.value}
        if sha:
            payload["sha"] = sha
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            resp = await client.put(
                f"{self._repo_url(owner, name)}/pulls/{number}/merge",
                headers=self._headers(),
                json=payload,
            )
        _raise_for_status(resp, merge=True)
        if resp.json().get("merged") is False:
            raise NotMergeableError(resp.status_code, _error_message(resp))

    async def enable_auto_merge(self, *, node_id: str, method: MergeMethod) -> None:
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            resp = await client.post(
                self._graphql_url,
                headers=self._headers(),
                json={
                    "query": ENABLE_AUTO_MERGE_MUTATION,
                    "variables": {"pullRequestId": node_id, "mergeMethod": method.value.upper()},
                },
            )
        _raise_for_status(resp)
        errors = resp.json().get("errors")
        if errors:
            message = "; ".join(str(error.get("message")) for error in errors)
            raise GithubApiError(resp.status_code, message)

    async def has_dependabot_config(self, *, owner: str, name: str) -> bool:
        try:
            await self._get_json(f"{self._repo_url(owner, name)}/contents/{DEPENDABOT_CONFIG_PATH}")
        except NotFoundError:
            return False
        return True

    async def get_rate_limits(self) -> RateLimits:
        data = await self._get_json(f"{self._api_url}/rate_limit")
        core = (data.get("resources") or {}).get("core") or data.get("rate") or {}
        reset = core.get("reset")
        return RateLimits(
            limit=core.get("limit"),
            remaining=core.get("remaining"),
            resets_at=datetime.fromtimestamp(int(reset), tz=timezone.utc) if reset is not None else None,
        )
