from __future__ import annotations

import asyncio
from functools import partial
from typing import Awaitable, Callable, Optional, Sequence

import structlog

from dependabot_helper.models.pull_request import MergeMethod, MergeReport, PullRequest
from dependabot_helper.services.integrations.base import GithubApiError, NotMergeableError, is_fatal
from dependabot_helper.services.integrations.cached import CachingGithubHost
from dependabot_helper.services.merge_policy import select_merge_method
from dependabot_helper.services.retry import RetryPolicy
from dependabot_helper.services.scanner import PullRequestScanner

logger = structlog.get_logger(__name__)


def _not_mergeable(exc: Exception) -> bool:
    return isinstance(exc, NotMergeableError)


class PullRequestMerger:
    """Merge every eligible bot pull request of a repository, newest first.

    Pull requests are merged one at a time. A pull request that is still not
    mergeable after the retry schedule gets auto-merge enabled instead; any
    other failure of a single pull request is logged and the batch moves on.
    Unauthorized, forbidden and rate-limited errors and a repository without
    a usable merge method abort the whole call.
    """

    def __init__(
        self,
        host: CachingGithubHost,
        scanner: PullRequestScanner,
        *,
        creators: Sequence[str],
        merge_preferences: Sequence[MergeMethod] = (),
        retry_waits: Sequence[float] = (),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._host = host
        self._scanner = scanner
        self._creators = list(creators)
        self._merge_preferences = list(merge_preferences)
        self._retry = RetryPolicy(waits=tuple(retry_waits), should_retry=_not_mergeable, sleep=sleep)

    async def merge_eligible_pull_requests(
        self,
        owner: str,
        name: str,
        merge_method: Optional[MergeMethod] = None,
    ) -> MergeReport:
        candidates = await self._scanner.scan_repository(owner, name, self._creators, fetch_statuses=False)
        if not candidates:
            return MergeReport(owner=owner, name=name)

        repository = await self._host.get_repository(owner=owner, name=name)
        method = select_merge_method(repository, merge_method, self._merge_preferences)

        merged: list[int] = []
        for pull_request in candidates:
            if await self._merge_one(pull_request, method):
                merged.append(pull_request.number)

        logger.info(
            "Merged pull requests",
            owner=owner,
            repository=name,
            method=method.value,
            merged=merged,
            candidates=[pr.number for pr in candidates],
        )
        return MergeReport(owner=owner, name=name, method=method, merged=merged)

    async def _merge_one(self, pull_request: PullRequest, method: MergeMethod) -> bool:
        owner = pull_request.repository_owner
        name = pull_request.repository_name
        merge = partial(
            self._host.merge_pull_request,
            owner=owner,
            name=name,
            number=pull_request.number,
            method=method,
            sha=pull_request.head_sha,
        )
        try:
            await self._retry.run(merge, owner=owner, repository=name, number=pull_request.number)
        except NotMergeableError:
            logger.info(
                "Pull request is not mergeable; enabling auto-merge",
                owner=owner,
                repository=name,
                number=pull_request.number,
            )
            await self._enable_auto_merge(pull_request, method)
            return False
        except GithubApiError as exc:
            if is_fatal(exc):
                raise
            logger.error(
                "Could not merge pull request",
                owner=owner,
                repository=name,
                number=pull_request.number,
                error=str(exc),
            )
            return False
        return True

    async def _enable_auto_merge(self, pull_request: PullRequest, method: MergeMethod) -> None:
        try:
            await self._host.enable_auto_merge(node_id=pull_request.node_id, method=method)
        except Exception as exc:
            logger.warning(
                "Could not enable auto-merge for pull request",
                owner=pull_request.repository_owner,
                repository=pull_request.repository_name,
                number=pull_request.number,
                error=str(exc),
            )
