from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .checks import ChecksStatus


class MergeMethod(str, Enum):
    MERGE = "merge"
    REBASE = "rebase"
    SQUASH = "squash"


class PullRequest(BaseModel):
    """A bot-authored pull request that passed the draft/mergeability filter.

    Instances are frozen. The scanner builds a new candidate on every scan,
    with its approval and checks verdicts set at construction, so a
    half-evaluated candidate is never observable.
    """

    model_config = ConfigDict(frozen=True)

    number: int
    repository_owner: str
    repository_name: str
    title: str
    html_url: str
    head_sha: str
    base_ref: str
    node_id: str
    is_draft: bool = False
    mergeable: Optional[bool] = None

    can_approve: bool = False
    is_approved: bool = False
    status: ChecksStatus = ChecksStatus.PENDING

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_conflicts(self) -> bool:
        return self.mergeable is False


class MergeReport(BaseModel):
    owner: str
    name: str
    method: Optional[MergeMethod] = None
    merged: list[int] = Field(default_factory=list)
