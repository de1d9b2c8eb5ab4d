from __future__ import annotations

from typing import Optional, Protocol, Sequence

from dependabot_helper.models.github import (
    BranchProtection,
    CheckRun,
    CheckSuite,
    CombinedStatus,
    Issue,
    PullRequestDetail,
    RateLimits,
    Repository,
    Review,
    User,
)
from dependabot_helper.models.pull_request import MergeMethod


class GithubApiError(RuntimeError):
    code = "github_api_error"

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"{self.code}: HTTP {status_code}: {message}")

    def as_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message, "status": self.status_code}


class NotFoundError(GithubApiError):
    code = "not_found"


class UnauthorizedError(GithubApiError):
    code = "unauthorized"


class ForbiddenError(GithubApiError):
    code = "forbidden"


class RateLimitedError(GithubApiError):
    code = "rate_limited"


class NotMergeableError(GithubApiError):
    code = "not_mergeable"


class ConfigurationError(RuntimeError):
    code = "configuration_error"

    def as_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": str(self)}


class ProviderConfigError(ConfigurationError):
    code = "provider_not_ready"

    def __init__(
        self,
        *,
        provider: str,
        mode: str,
        reason_code: str,
        missing_or_invalid_fields: list[str] | None = None,
    ) -> None:
        self.provider = provider
        self.mode = mode
        self.reason_code = reason_code
        self.missing_or_invalid_fields = missing_or_invalid_fields or []
        fields = ", ".join(self.missing_or_invalid_fields) or "none"
        super().__init__(
            f"{provider}_{reason_code}: mode={mode}; missing_or_invalid_fields={fields}"
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "code": self.code,
            "provider": self.provider,
            "mode": self.mode,
            "reason": self.reason_code,
            "missing_fields": self.missing_or_invalid_fields,
        }


class MergeMethodError(ConfigurationError):
    code = "no_merge_method"

    def __init__(self, *, owner: str, name: str, candidates: Sequence[MergeMethod]) -> None:
        self.owner = owner
        self.name = name
        self.candidates = list(candidates)
        tried = ", ".join(method.value for method in self.candidates)
        super().__init__(f"No valid merge method for {owner}/{name} (tried: {tried})")


def is_fatal(exc: BaseException) -> bool:
    """Errors that must reach the caller even from per pull request work."""
    return isinstance(exc, (UnauthorizedError, ForbiddenError, RateLimitedError))


class GithubHost(Protocol):
    async def get_user(self, *, login: str) -> User: ...

    async def get_current_user(self) -> User: ...

    async def get_organizations_for_current_user(self) -> list[User]: ...

    async def get_repository(self, *, owner: str, name: str) -> Repository: ...

    async def list_repositories_for_org(self, *, owner: str) -> list[Repository]: ...

    async def list_repositories_for_user(self, *, owner: str) -> list[Repository]: ...

    async def list_repositories_for_current_user(self) -> list[Repository]: ...

    async def get_branch_protection(
        self, *, owner: str, name: str, branch: str
    ) -> Optional[BranchProtection]: ...

    async def list_issues(
        self,
        *,
        owner: str,
        name: str,
        creator: str,
        labels: Sequence[str],
        state: str = "open",
        page_size: int = 100,
        page_count: int = 10,
    ) -> list[Issue]: ...

    async def get_pull_request(self, *, owner: str, name: str, number: int) -> PullRequestDetail: ...

    async def get_combined_status(self, *, owner: str, name: str, sha: str) -> CombinedStatus: ...

    async def list_check_suites(self, *, owner: str, name: str, sha: str) -> list[CheckSuite]: ...

    async def list_check_runs(self, *, owner: str, name: str, suite_id: int) -> list[CheckRun]: ...

    async def list_reviews(self, *, owner: str, name: str, number: int) -> list[Review]: ...

    async def create_review(self, *, owner: str, name: str, number: int, event: str = "APPROVE") -> None: ...

    async def merge_pull_request(
        self,
        *,
        owner: str,
        name: str,
        number: int,
        method: MergeMethod,
        sha: Optional[str] = None,
    ) -> None: ...

    async def enable_auto_merge(self, *, node_id: str, method: MergeMethod) -> None: ...

    async def has_dependabot_config(self, *, owner: str, name: str) -> bool: ...

    async def get_rate_limits(self) -> RateLimits: ...
