from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from dependabot_helper.config import Settings, get_settings
from dependabot_helper.models.github import RateLimits, Repository, User
from dependabot_helper.models.pull_request import MergeMethod, MergeReport
from dependabot_helper.models.repository import Owner, RepositoryPullRequests, RepositorySummary
from dependabot_helper.services.cache import ResponseCache, get_response_cache, token_key
from dependabot_helper.services.integrations.base import GithubHost
from dependabot_helper.services.integrations.cached import CachingGithubHost
from dependabot_helper.services.integrations.router import get_github_host
from dependabot_helper.services.merge_policy import allowed_merge_methods
from dependabot_helper.services.merger import PullRequestMerger
from dependabot_helper.services.scanner import PullRequestScanner

logger = structlog.get_logger(__name__)


def _summary(repository: Repository) -> RepositorySummary:
    return RepositorySummary(
        id=repository.id,
        name=repository.name,
        html_url=repository.html_url,
        is_fork=repository.fork,
        is_private=repository.is_private,
    )


class GithubService:
    def __init__(
        self,
        host: GithubHost,
        cache: ResponseCache,
        settings: Settings,
        *,
        user: User,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.user = user
        self._settings = settings
        self._host = CachingGithubHost(host, cache, user_id=str(user.id))
        self._scanner = PullRequestScanner(
            self._host,
            current_login=user.login,
            labels=settings.resolved_labels(),
            page_size=settings.dependabot_page_size,
            page_count=settings.dependabot_page_count,
        )
        self._merger = PullRequestMerger(
            self._host,
            self._scanner,
            creators=settings.resolved_users(),
            merge_preferences=settings.resolved_merge_preferences(),
            retry_waits=settings.resolved_merge_retry_waits(),
            sleep=sleep,
        )

    async def get_owners(self) -> list[Owner]:
        organizations = await self._host.get_organizations_for_current_user()
        owners = [Owner(name=self.user.login, avatar_url=self.user.avatar_url)]
        for organization in sorted(organizations, key=lambda org: org.login.lower()):
            owners.append(Owner(name=organization.login, avatar_url=organization.avatar_url, is_organization=True))
        return owners

    async def get_repositories(self, owner: str) -> list[RepositorySummary]:
        if owner.lower() == self.user.login.lower():
            repositories = await self._host.list_repositories_for_current_user()
        else:
            account = await self._host.get_user(login=owner)
            if account.is_organization:
                repositories = await self._host.list_repositories_for_org(owner=owner)
            else:
                repositories = await self._host.list_repositories_for_user(owner=owner)

        visible = [
            repository
            for repository in repositories
            if (self._settings.dependabot_include_forks or not repository.fork)
            and (self._settings.dependabot_include_private or not repository.is_private)
        ]
        return [_summary(repository) for repository in sorted(visible, key=lambda repo: repo.name.lower())]

    async def get_pull_requests(self, owner: str, name: str) -> RepositoryPullRequests:
        repository = await self._host.get_repository(owner=owner, name=name)
        pull_requests = await self._scanner.scan_repository(
            owner,
            name,
            self._settings.resolved_users(),
            fetch_statuses=True,
        )
        has_config = await self._host.has_dependabot_config(owner=owner, name=name)
        return RepositoryPullRequests(
            **_summary(repository).model_dump(),
            dependabot_html_url=f"{repository.html_url}/network/updates" if has_config else None,
            merge_methods=allowed_merge_methods(repository),
            all=pull_requests,
        )

    async def merge_pull_requests(
        self,
        owner: str,
        name: str,
        merge_method: Optional[MergeMethod] = None,
    ) -> MergeReport:
        return await self._merger.merge_eligible_pull_requests(owner, name, merge_method)

    async def approve_pull_request(self, owner: str, name: str, number: int) -> None:
        await self._host.create_review(owner=owner, name=name, number=number)
        logger.info("Approved pull request", owner=owner, repository=name, number=number, user=self.user.login)

    async def get_rate_limits(self) -> RateLimits:
        return await self._host.get_rate_limits()


async def create_github_service(token: Optional[str] = None) -> GithubService:
    settings = get_settings()
    host, backend = get_github_host(token)
    cache = get_response_cache()
    credential = token or settings.github_token
    identity = token_key(credential) if credential else backend
    user = await cache.get_or_compute(identity, "current-user", cache.long_lifetime, host.get_current_user)
    return GithubService(host, cache, settings, user=user)
