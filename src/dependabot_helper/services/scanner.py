from __future__ import annotations

from typing import Optional, Sequence

import structlog

from dependabot_helper.models.github import Issue
from dependabot_helper.models.pull_request import PullRequest
from dependabot_helper.services.approval import ApprovalEvaluator
from dependabot_helper.services.checks import ChecksEvaluator
from dependabot_helper.services.integrations.base import GithubApiError, is_fatal
from dependabot_helper.services.integrations.cached import CachingGithubHost

logger = structlog.get_logger(__name__)


class PullRequestScanner:
    """Find the open bot pull requests of a repository.

    With ``fetch_statuses=True`` (display) each candidate carries its approval
    and checks verdicts. With ``fetch_statuses=False`` (merge) the verdicts are
    skipped and pull requests the host already knows to be unmergeable are
    dropped. Drafts are always dropped.
    """

    def __init__(
        self,
        host: CachingGithubHost,
        *,
        current_login: str,
        labels: Sequence[str] = (),
        page_size: int = 100,
        page_count: int = 10,
    ) -> None:
        self._host = host
        self._current_login = current_login
        self._labels = list(labels)
        self._page_size = page_size
        self._page_count = page_count
        self._approvals = ApprovalEvaluator(host)
        self._checks = ChecksEvaluator(host)

    async def scan_repository(
        self,
        owner: str,
        name: str,
        creators: Sequence[str],
        *,
        fetch_statuses: bool,
    ) -> list[PullRequest]:
        found: dict[int, PullRequest] = {}
        for creator in creators:
            issues = await self._host.list_issues(
                owner=owner,
                name=name,
                creator=creator,
                labels=self._labels,
                page_size=self._page_size,
                page_count=self._page_count,
            )
            for issue in issues:
                if not issue.is_pull_request or issue.number in found:
                    continue
                try:
                    candidate = await self._build_candidate(owner, name, issue, fetch_statuses=fetch_statuses)
                except GithubApiError as exc:
                    if is_fatal(exc):
                        raise
                    logger.warning(
                        "Skipping pull request that could not be evaluated",
                        owner=owner,
                        repository=name,
                        number=issue.number,
                        error=str(exc),
                    )
                    continue
                if candidate is not None:
                    found[candidate.number] = candidate

        return sorted(found.values(), key=lambda pr: pr.number, reverse=True)

    async def _build_candidate(
        self,
        owner: str,
        name: str,
        issue: Issue,
        *,
        fetch_statuses: bool,
    ) -> Optional[PullRequest]:
        detail = await self._host.get_pull_request(owner=owner, name=name, number=issue.number)
        if detail.draft:
            return None
        if not fetch_statuses and detail.mergeable is False:
            return None

        fields = {
            "number": detail.number,
            "repository_owner": owner,
            "repository_name": name,
            "title": detail.title or issue.title,
            "html_url": detail.html_url or issue.html_url,
            "head_sha": detail.head_sha,
            "base_ref": detail.base_ref,
            "node_id": detail.node_id,
            "is_draft": detail.draft,
            "mergeable": detail.mergeable,
        }
        if not fetch_statuses:
            return PullRequest(**fields)

        approval = await self._approvals.evaluate_approval(
            owner, name, detail.number, detail.base_ref, self._current_login
        )
        status = await self._checks.evaluate_checks_status(owner, name, detail.head_sha, detail.base_ref)
        return PullRequest(
            **fields,
            can_approve=approval.can_approve,
            is_approved=approval.is_approved,
            status=status,
        )
