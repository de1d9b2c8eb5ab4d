from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from dependabot_helper.models.github import Review
from dependabot_helper.services.integrations.cached import CachingGithubHost

REVIEWER_ASSOCIATIONS = frozenset({"COLLABORATOR", "MEMBER", "OWNER"})

STATE_APPROVED = "APPROVED"
STATE_CHANGES_REQUESTED = "CHANGES_REQUESTED"

_UNSUBMITTED = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ApprovalDecision:
    can_approve: bool
    is_approved: bool


def latest_reviews(reviews: Iterable[Review]) -> dict[str, Review]:
    """Most recent review per reviewer, ignoring reviewers who cannot review.

    Bots are always kept; humans need a collaborator, member or owner
    association with the repository.
    """
    latest: dict[str, Review] = {}
    for review in sorted(reviews, key=lambda item: item.submitted_at or _UNSUBMITTED):
        if not review.user_is_bot and review.author_association.upper() not in REVIEWER_ASSOCIATIONS:
            continue
        latest[review.user_login] = review
    return latest


def decide_approval(
    reviews: Iterable[Review],
    *,
    current_login: str,
    required_count: int,
) -> ApprovalDecision:
    reviews = list(reviews)
    if not reviews:
        return ApprovalDecision(can_approve=True, is_approved=False)

    surviving = latest_reviews(reviews)
    can_approve = current_login not in surviving

    states = [review.state.upper() for review in surviving.values()]
    if STATE_CHANGES_REQUESTED in states:
        return ApprovalDecision(can_approve=can_approve, is_approved=False)

    approvals = states.count(STATE_APPROVED)
    return ApprovalDecision(
        can_approve=can_approve,
        is_approved=approvals > 0 and approvals >= max(1, required_count),
    )


class ApprovalEvaluator:
    def __init__(self, host: CachingGithubHost) -> None:
        self._host = host

    async def required_reviewers(self, owner: str, name: str, branch: str) -> int:
        protection = await self._host.get_branch_protection(owner=owner, name=name, branch=branch)
        if protection is None:
            return 1
        return protection.required_approving_review_count

    async def evaluate_approval(
        self,
        owner: str,
        name: str,
        number: int,
        base_branch: str,
        current_login: str,
    ) -> ApprovalDecision:
        reviews = await self._host.list_reviews(owner=owner, name=name, number=number)
        if not reviews:
            return ApprovalDecision(can_approve=True, is_approved=False)
        required = await self.required_reviewers(owner, name, base_branch)
        return decide_approval(reviews, current_login=current_login, required_count=required)
