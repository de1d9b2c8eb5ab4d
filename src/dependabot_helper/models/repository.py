from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, computed_field

from .checks import ChecksStatus
from .pull_request import MergeMethod, PullRequest


class Owner(BaseModel):
    name: str
    avatar_url: str = ""
    is_organization: bool = False


class RepositorySummary(BaseModel):
    id: int
    name: str
    html_url: str
    is_fork: bool = False
    is_private: bool = False


class RepositoryPullRequests(RepositorySummary):
    dependabot_html_url: Optional[str] = None
    merge_methods: list[MergeMethod] = Field(default_factory=list)
    all: list[PullRequest] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def error(self) -> list[PullRequest]:
        return [pr for pr in self.all if pr.status == ChecksStatus.ERROR]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pending(self) -> list[PullRequest]:
        return [pr for pr in self.all if pr.status == ChecksStatus.PENDING]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> list[PullRequest]:
        return [pr for pr in self.all if pr.status == ChecksStatus.SUCCESS]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def approved(self) -> list[PullRequest]:
        return [pr for pr in self.all if pr.is_approved]
