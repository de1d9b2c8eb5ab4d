from .approval import ApprovalDecision, ApprovalEvaluator
from .cache import ResponseCache, get_response_cache
from .checks import ChecksEvaluator
from .github_service import GithubService, create_github_service
from .merge_policy import allowed_merge_methods, merge_preference_order, select_merge_method
from .merger import PullRequestMerger
from .retry import RetryPolicy
from .scanner import PullRequestScanner

__all__ = [
    "ApprovalDecision",
    "ApprovalEvaluator",
    "ChecksEvaluator",
    "GithubService",
    "PullRequestMerger",
    "PullRequestScanner",
    "ResponseCache",
    "RetryPolicy",
    "allowed_merge_methods",
    "create_github_service",
    "get_response_cache",
    "merge_preference_order",
    "select_merge_method",
]
