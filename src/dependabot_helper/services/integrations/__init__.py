from .base import (
    ConfigurationError,
    ForbiddenError,
    GithubApiError,
    GithubHost,
    MergeMethodError,
    NotFoundError,
    NotMergeableError,
    ProviderConfigError,
    RateLimitedError,
    UnauthorizedError,
    is_fatal,
)
from .cached import CachingGithubHost
from .router import get_github_host, get_mock_host, get_provider_readiness

__all__ = [
    "CachingGithubHost",
    "ConfigurationError",
    "ForbiddenError",
    "GithubApiError",
    "GithubHost",
    "MergeMethodError",
    "NotFoundError",
    "NotMergeableError",
    "ProviderConfigError",
    "RateLimitedError",
    "UnauthorizedError",
    "get_github_host",
    "get_mock_host",
    "get_provider_readiness",
    "is_fatal",
]
