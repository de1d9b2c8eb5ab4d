"""Records returned by the repository hosting service.

These mirror the subset of GitHub's REST payloads that the pull request
evaluation needs. They are read-only snapshots; nothing in the service mutates
them after they are fetched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class User(BaseModel):
    id: int
    login: str
    type: str = "User"
    avatar_url: str = ""

    @property
    def is_organization(self) -> bool:
        return self.type == "Organization"


class Repository(BaseModel):
    id: int
    name: str
    owner: str
    html_url: str
    fork: bool = False
    private: bool = False
    visibility: Optional[str] = None
    allow_merge_commit: bool = True
    allow_rebase_merge: bool = True
    allow_squash_merge: bool = True

    @property
    def is_private(self) -> bool:
        return self.private or (self.visibility is not None and self.visibility != "public")


class Issue(BaseModel):
    number: int
    title: str
    html_url: str
    is_pull_request: bool = False


class PullRequestDetail(BaseModel):
    number: int
    title: str
    html_url: str
    head_sha: str
    base_ref: str
    node_id: str
    draft: bool = False
    # None while GitHub is still computing mergeability.
    mergeable: Optional[bool] = None


class CommitStatus(BaseModel):
    context: str
    state: str


class CombinedStatus(BaseModel):
    state: str = "pending"
    total_count: int = 0
    statuses: list[CommitStatus] = Field(default_factory=list)


class CheckSuite(BaseModel):
    id: int
    status: Optional[str] = None
    conclusion: Optional[str] = None


class CheckRun(BaseModel):
    id: int
    name: str
    status: Optional[str] = None
    conclusion: Optional[str] = None


class Review(BaseModel):
    id: int
    user_login: str
    user_is_bot: bool = False
    author_association: str = "NONE"
    state: str
    submitted_at: Optional[datetime] = None


class BranchProtection(BaseModel):
    """Branch rules relevant to merging.

    At least one approving review is always required, even when the branch
    protection leaves the count unset or sets it to zero.
    """

    required_approving_review_count: int = 1
    required_status_checks: list[str] = Field(default_factory=list)

    @field_validator("required_approving_review_count", mode="before")
    @classmethod
    def _at_least_one(cls, value: Any) -> int:
        if value is None:
            return 1
        return max(1, int(value))


class RateLimits(BaseModel):
    limit: Optional[int] = None
    remaining: Optional[int] = None
    resets_at: Optional[datetime] = None
