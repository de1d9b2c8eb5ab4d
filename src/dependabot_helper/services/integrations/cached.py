from __future__ import annotations

from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from dependabot_helper.models.github import (
    BranchProtection,
    CheckRun,
    CheckSuite,
    CombinedStatus,
    Issue,
    PullRequestDetail,
    RateLimits,
    Repository,
    Review,
    User,
)
from dependabot_helper.models.pull_request import MergeMethod
from dependabot_helper.services.cache import ResponseCache
from dependabot_helper.services.integrations.base import GithubHost

T = TypeVar("T")


class CachingGithubHost:
    """A host bound to one user, deciding which lookups may be cached.

    Near-static data (users, organizations, branch protection, dependabot
    config detection) uses the long lifetime; volatile data (repository
    metadata, commit statuses, check suites and runs) the short one. Reviews,
    issue listings, pull requests and every write always go to the host.
    """

    def __init__(self, host: GithubHost, cache: ResponseCache, *, user_id: str) -> None:
        self.host = host
        self.cache = cache
        self.user_id = user_id

    async def _long(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        return await self.cache.get_or_compute(self.user_id, key, self.cache.long_lifetime, factory)

    async def _short(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        return await self.cache.get_or_compute(self.user_id, key, self.cache.short_lifetime, factory)

    async def get_user(self, *, login: str) -> User:
        return await self._long(f"user:{login}", lambda: self.host.get_user(login=login))

    async def get_organizations_for_current_user(self) -> list[User]:
        return await self._long("orgs", self.host.get_organizations_for_current_user)

    async def get_repository(self, *, owner: str, name: str) -> Repository:
        return await self._short(f"repo:{owner}/{name}", lambda: self.host.get_repository(owner=owner, name=name))

    async def list_repositories_for_org(self, *, owner: str) -> list[Repository]:
        return await self._short(f"repos:org:{owner}", lambda: self.host.list_repositories_for_org(owner=owner))

    async def list_repositories_for_user(self, *, owner: str) -> list[Repository]:
        return await self._short(f"repos:user:{owner}", lambda: self.host.list_repositories_for_user(owner=owner))

    async def list_repositories_for_current_user(self) -> list[Repository]:
        return await self._short("repos:self", self.host.list_repositories_for_current_user)

    async def get_branch_protection(self, *, owner: str, name: str, branch: str) -> Optional[BranchProtection]:
        return await self._long(
            f"protection:{owner}/{name}:{branch}",
            lambda: self.host.get_branch_protection(owner=owner, name=name, branch=branch),
        )

    async def get_combined_status(self, *, owner: str, name: str, sha: str) -> CombinedStatus:
        return await self._short(
            f"status:{owner}/{name}:{sha}",
            lambda: self.host.get_combined_status(owner=owner, name=name, sha=sha),
        )

    async def list_check_suites(self, *, owner: str, name: str, sha: str) -> list[CheckSuite]:
        return await self._short(
            f"check-suites:{owner}/{name}:{sha}",
            lambda: self.host.list_check_suites(owner=owner, name=name, sha=sha),
        )

    async def list_check_runs(self, *, owner: str, name: str, suite_id: int) -> list[CheckRun]:
        return await self._short(
            f"check-runs:{owner}/{name}:{suite_id}",
            lambda: self.host.list_check_runs(owner=owner, name=name, suite_id=suite_id),
        )

    async def has_dependabot_config(self, *, owner: str, name: str) -> bool:
        return await self._long(
            f"dependabot-config:{owner}/{name}",
            lambda: self.host.has_dependabot_config(owner=owner, name=name),
        )

    # Never cached.

    async def list_issues(
        self,
        *,
        owner: str,
        name: str,
        creator: str,
        labels: Sequence[str],
        page_size: int = 100,
        page_count: int = 10,
    ) -> list[Issue]:
        return await self.host.list_issues(
            owner=owner,
            name=name,
            creator=creator,
            labels=labels,
            state="open",
            page_size=page_size,
            page_count=page_count,
        )

    async def get_pull_request(self, *, owner: str, name: str, number: int) -> PullRequestDetail:
        return await self.host.get_pull_request(owner=owner, name=name, number=number)

    async def list_reviews(self, *, owner: str, name: str, number: int) -> list[Review]:
        return await self.host.list_reviews(owner=owner, name=name, number=number)

    async def create_review(self, *, owner: str, name: str, number: int) -> None:
        await self.host.create_review(owner=owner, name=name, number=number, event="APPROVE")

    async def merge_pull_request(
        self,
        *,
        owner: str,
        name: str,
        number: int,
        method: MergeMethod,
        sha: Optional[str] = None,
    ) -> None:
        await self.host.merge_pull_request(owner=owner, name=name, number=number, method=method, sha=sha)

    async def enable_auto_merge(self, *, node_id: str, method: MergeMethod) -> None:
        await self.host.enable_auto_merge(node_id=node_id, method=method)

    async def get_rate_limits(self) -> RateLimits:
        return await self.host.get_rate_limits()
