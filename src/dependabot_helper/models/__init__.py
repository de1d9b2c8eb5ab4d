from .checks import ChecksStatus
from .github import (
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
from .pull_request import MergeMethod, MergeReport, PullRequest
from .repository import Owner, RepositoryPullRequests, RepositorySummary

__all__ = [
    "BranchProtection",
    "CheckRun",
    "CheckSuite",
    "ChecksStatus",
    "CombinedStatus",
    "CommitStatus",
    "Issue",
    "MergeMethod",
    "MergeReport",
    "Owner",
    "PullRequest",
    "PullRequestDetail",
    "RateLimits",
    "Repository",
    "RepositoryPullRequests",
    "RepositorySummary",
    "Review",
    "User",
]
