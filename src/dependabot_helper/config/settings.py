from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from dependabot_helper.models.pull_request import MergeMethod


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # GitHub integration
    github_integration_mode: str = "api"
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_graphql_url: str = "https://api.github.com/graphql"
    github_timeout_seconds: float = 20.0

    # Pull request discovery and merging
    dependabot_users: str = "dependabot[bot]"
    dependabot_labels: str = ""
    dependabot_merge_preferences: str = ""
    dependabot_merge_retry_waits: str = "2,5,10"
    dependabot_include_forks: bool = False
    dependabot_include_private: bool = True
    dependabot_page_size: int = 100
    dependabot_page_count: int = 10

    # Caching
    cache_lifetime_seconds: float = 20.0
    cache_long_lifetime_seconds: float = 3600.0
    disable_caching: bool = False

    # Logging
    log_level: str = "INFO"
    cors_allowed_origins: str = "http://localhost:5173,http://localhost:3000"
    app_version: Optional[str] = None
    build_sha: Optional[str] = None

    def resolved_users(self) -> list[str]:
        return _split(self.dependabot_users)

    def resolved_labels(self) -> list[str]:
        return _split(self.dependabot_labels)

    def resolved_merge_preferences(self) -> list[MergeMethod]:
        return [MergeMethod(item.lower()) for item in _split(self.dependabot_merge_preferences)]

    def resolved_merge_retry_waits(self) -> list[float]:
        waits = [float(item) for item in _split(self.dependabot_merge_retry_waits)]
        if any(wait < 0 for wait in waits):
            raise ValueError("DEPENDABOT_MERGE_RETRY_WAITS must not contain negative durations")
        return waits

    def resolved_cors_origins(self) -> list[str]:
        return _split(self.cors_allowed_origins)


@lru_cache
def get_settings() -> Settings:
    return Settings()
