from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

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
from dependabot_helper.services.integrations.base import NotFoundError, NotMergeableError

RepoKey = tuple[str, str]
PullKey = tuple[str, str, int]


class MockGithubHost:
    """In-memory repository host.

    Backs ``GITHUB_INTEGRATION_MODE=mock`` and the test-suite. Every call is
    recorded in ``calls`` so tests can assert on which lookups happened.
    Merges can be scripted per pull request through ``merge_errors`` (consumed
    in order) and ``blocked_merges`` (raised on every attempt).
    """

    def __init__(self, *, current_user: Optional[User] = None) -> None:
        self.current_user = current_user or User(id=1, login="octocat", avatar_url="https://github.com/octocat.png")
        self.organizations: list[User] = []
        self.users: dict[str, User] = {self.current_user.login: self.current_user}
        self.repositories: dict[RepoKey, Repository] = {}
        self.branch_protections: dict[tuple[str, str, str], BranchProtection] = {}
        self.issues: dict[RepoKey, list[tuple[str, frozenset[str], Issue]]] = {}
        self.pull_requests: dict[PullKey, PullRequestDetail] = {}
        self.combined_statuses: dict[str, CombinedStatus] = {}
        self.check_suites: dict[str, list[CheckSuite]] = {}
        self.check_runs: dict[int, list[CheckRun]] = {}
        self.reviews: dict[PullKey, list[Review]] = {}
        self.dependabot_configs: set[RepoKey] = set()
        self.merge_errors: dict[PullKey, list[Exception]] = {}
        self.blocked_merges: dict[PullKey, Exception] = {}
        self.auto_merge_errors: dict[str, Exception] = {}
        self.closed: set[PullKey] = set()
        self.merged: list[tuple[str, str, int, MergeMethod]] = []
        self.auto_merge_requests: list[tuple[str, MergeMethod]] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.rate_limits = RateLimits(limit=5000, remaining=4999, resets_at=None)

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method]

    def add_repository(self, repository: Repository) -> Repository:
        self.repositories[(repository.owner, repository.name)] = repository
        return repository

    def add_pull_request(
        self,
        owner: str,
        name: str,
        pull_request: PullRequestDetail,
        *,
        creator: str = "dependabot[bot]",
        labels: Sequence[str] = ("dependencies",),
    ) -> PullRequestDetail:
        issue = Issue(
            number=pull_request.number,
            title=pull_request.title,
            html_url=pull_request.html_url,
            is_pull_request=True,
        )
        self.issues.setdefault((owner, name), []).append((creator, frozenset(labels), issue))
        self.pull_requests[(owner, name, pull_request.number)] = pull_request
        return pull_request

    def add_issue(
        self,
        owner: str,
        name: str,
        issue: Issue,
        *,
        creator: str = "dependabot[bot]",
        labels: Sequence[str] = (),
    ) -> Issue:
        self.issues.setdefault((owner, name), []).append((creator, frozenset(labels), issue))
        return issue

    async def get_user(self, *, login: str) -> User:
        self.calls.append(("get_user", {"login": login}))
        for user in [*self.users.values(), *self.organizations]:
            if user.login == login:
                return user
        raise NotFoundError(404, f"User {login} not found")

    async def get_current_user(self) -> User:
        self.calls.append(("get_current_user", {}))
        return self.current_user

    async def get_organizations_for_current_user(self) -> list[User]:
        self.calls.append(("get_organizations_for_current_user", {}))
        return list(self.organizations)

    async def get_repository(self, *, owner: str, name: str) -> Repository:
        self.calls.append(("get_repository", {"owner": owner, "name": name}))
        try:
            return self.repositories[(owner, name)]
        except KeyError:
            raise NotFoundError(404, f"Repository {owner}/{name} not found") from None

    async def list_repositories_for_org(self, *, owner: str) -> list[Repository]:
        self.calls.append(("list_repositories_for_org", {"owner": owner}))
        return [repo for (repo_owner, _), repo in self.repositories.items() if repo_owner == owner]

    async def list_repositories_for_user(self, *, owner: str) -> list[Repository]:
        self.calls.append(("list_repositories_for_user", {"owner": owner}))
        return [repo for (repo_owner, _), repo in self.repositories.items() if repo_owner == owner]

    async def list_repositories_for_current_user(self) -> list[Repository]:
        self.calls.append(("list_repositories_for_current_user", {}))
        login = self.current_user.login
        return [repo for (repo_owner, _), repo in self.repositories.items() if repo_owner == login]

    async def get_branch_protection(self, *, owner: str, name: str, branch: str) -> Optional[BranchProtection]:
        self.calls.append(("get_branch_protection", {"owner": owner, "name": name, "branch": branch}))
        return self.branch_protections.get((owner, name, branch))

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
        self.calls.append(
            ("list_issues", {"owner": owner, "name": name, "creator": creator, "labels": list(labels)})
        )
        if (owner, name) not in self.repositories:
            raise NotFoundError(404, f"Repository {owner}/{name} not found")
        wanted = set(labels)
        matches = [
            issue
            for issue_creator, issue_labels, issue in self.issues.get((owner, name), [])
            if issue_creator == creator
            and wanted <= issue_labels
            and ((owner, name, issue.number) in self.closed) == (state == "closed")
        ]
        return matches[: page_size * page_count]

    async def get_pull_request(self, *, owner: str, name: str, number: int) -> PullRequestDetail:
        self.calls.append(("get_pull_request", {"owner": owner, "name": name, "number": number}))
        try:
            return self.pull_requests[(owner, name, number)]
        except KeyError:
            raise NotFoundError(404, f"Pull request {owner}/{name}#{number} not found") from None

    async def get_combined_status(self, *, owner: str, name: str, sha: str) -> CombinedStatus:
        self.calls.append(("get_combined_status", {"owner": owner, "name": name, "sha": sha}))
        return self.combined_statuses.get(sha, CombinedStatus())

    async def list_check_suites(self, *, owner: str, name: str, sha: str) -> list[CheckSuite]:
        self.calls.append(("list_check_suites", {"owner": owner, "name": name, "sha": sha}))
        return list(self.check_suites.get(sha, []))

    async def list_check_runs(self, *, owner: str, name: str, suite_id: int) -> list[CheckRun]:
        self.calls.append(("list_check_runs", {"owner": owner, "name": name, "suite_id": suite_id}))
        return list(self.check_runs.get(suite_id, []))

    async def list_reviews(self, *, owner: str, name: str, number: int) -> list[Review]:
        self.calls.append(("list_reviews", {"owner": owner, "name": name, "number": number}))
        return list(self.reviews.get((owner, name, number), []))

    async def create_review(self, *, owner: str, name: str, number: int, event: str = "APPROVE") -> None:
        self.calls.append(("create_review", {"owner": owner, "name": name, "number": number, "event": event}))
        if (owner, name, number) not in self.pull_requests:
            raise NotFoundError(404, f"Pull request {owner}/{name}#{number} not found")
        reviews = self.reviews.setdefault((owner, name, number), [])
        reviews.append(
            Review(
                id=len(reviews) + 1,
                user_login=self.current_user.login,
                author_association="OWNER",
                state="APPROVED" if event == "APPROVE" else event,
                submitted_at=datetime.now(timezone.utc),
            )
        )

    async def merge_pull_request(
        self,
        *,
        owner: str,
        name: str,
        number: int,
        method: MergeMethod,
        sha: Optional[str] = None,
    ) -> None:
        key = (owner, name, number)
        self.calls.append(
            ("merge_pull_request", {"owner": owner, "name": name, "number": number, "method": method, "sha": sha})
        )
        if key in self.blocked_merges:
            raise self.blocked_merges[key]
        pending_errors = self.merge_errors.get(key)
        if pending_errors:
            raise pending_errors.pop(0)
        pull_request = self.pull_requests.get(key)
        if pull_request is None or key in self.closed:
            raise NotFoundError(404, f"Pull request {owner}/{name}#{number} not found")
        if pull_request.mergeable is False:
            raise NotMergeableError(405, "Pull Request is not mergeable")
        self.closed.add(key)
        self.merged.append((owner, name, number, method))

    async def enable_auto_merge(self, *, node_id: str, method: MergeMethod) -> None:
        self.calls.append(("enable_auto_merge", {"node_id": node_id, "method": method}))
        if node_id in self.auto_merge_errors:
            raise self.auto_merge_errors[node_id]
        self.auto_merge_requests.append((node_id, method))

    async def has_dependabot_config(self, *, owner: str, name: str) -> bool:
        self.calls.append(("has_dependabot_config", {"owner": owner, "name": name}))
        return (owner, name) in self.dependabot_configs

    async def get_rate_limits(self) -> RateLimits:
        self.calls.append(("get_rate_limits", {}))
        return self.rate_limits

    @classmethod
    def demo(cls) -> "MockGithubHost":
        host = cls()
        org = User(id=2, login="octo-org", type="Organization", avatar_url="https://github.com/octo-org.png")
        host.organizations.append(org)
        owner = org.login
        repository = host.add_repository(
            Repository(
                id=100,
                name="service",
                owner=owner,
                html_url=f"https://github.com/{owner}/service",
                allow_merge_commit=False,
            )
        )
        host.add_repository(
            Repository(
                id=101,
                name="service-fork",
                owner=owner,
                html_url=f"https://github.com/{owner}/service-fork",
                fork=True,
            )
        )
        host.dependabot_configs.add((owner, repository.name))
        host.branch_protections[(owner, repository.name, "main")] = BranchProtection(
            required_approving_review_count=1,
            required_status_checks=["build"],
        )
        submitted = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for number, title, state in (
            (1, "Bump httpx from 0.27.0 to 0.28.1", "success"),
            (2, "Bump pydantic from 2.8.0 to 2.9.2", "pending"),
            (3, "Bump structlog from 24.1.0 to 24.4.0", "failure"),
        ):
            sha = f"sha-{number}"
            host.add_pull_request(
                owner,
                repository.name,
                PullRequestDetail(
                    number=number,
                    title=title,
                    html_url=f"https://github.com/{owner}/{repository.name}/pull/{number}",
                    head_sha=sha,
                    base_ref="main",
                    node_id=f"PR_node{number}",
                    mergeable=True,
                ),
            )
            host.combined_statuses[sha] = CombinedStatus(
                state=state,
                total_count=1,
                statuses=[CommitStatus(context="build", state=state)],
            )
        host.reviews[(owner, repository.name, 1)] = [
            Review(
                id=1,
                user_login="maintainer",
                author_association="MEMBER",
                state="APPROVED",
                submitted_at=submitted + timedelta(hours=1),
            )
        ]
        host.add_pull_request(
            owner,
            repository.name,
            PullRequestDetail(
                number=4,
                title="Bump uvicorn from 0.30.0 to 0.32.0",
                html_url=f"https://github.com/{owner}/{repository.name}/pull/4",
                head_sha="sha-4",
                base_ref="main",
                node_id="PR_node4",
                draft=True,
            ),
        )
        return host
