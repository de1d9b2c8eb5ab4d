from __future__ import annotations

from typing import Optional

from dependabot_helper.config import get_settings
from dependabot_helper.services.integrations.base import GithubHost, ProviderConfigError
from dependabot_helper.services.integrations.github_direct import GithubDirectHost
from dependabot_helper.services.integrations.mock_providers import MockGithubHost

_PLACEHOLDERS = {
    "",
    "placeholder",
    "placeholder_github_token",
    "changeme",
}

_mock_host: Optional[MockGithubHost] = None


def _usable(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() not in _PLACEHOLDERS


def _normalize_mode(provider: str, mode: str) -> str:
    normalized = mode.strip().lower()
    if normalized in {"api", "mock"}:
        return normalized
    raise ProviderConfigError(
        provider=provider,
        mode=mode,
        reason_code="invalid_mode",
        missing_or_invalid_fields=[f"{provider.upper()}_INTEGRATION_MODE"],
    )


def get_mock_host() -> MockGithubHost:
    global _mock_host
    if _mock_host is None:
        _mock_host = MockGithubHost.demo()
    return _mock_host


def get_github_host(token: Optional[str] = None) -> tuple[GithubHost, str]:
    """Resolve the host for a request; ``token`` overrides ``GITHUB_TOKEN``."""
    settings = get_settings()
    mode = _normalize_mode("github", settings.github_integration_mode)
    if mode == "mock":
        return get_mock_host(), "github_mock"
    effective_token = token if _usable(token) else settings.github_token
    if not _usable(effective_token):
        raise ProviderConfigError(
            provider="github",
            mode=mode,
            reason_code="missing_or_invalid_config",
            missing_or_invalid_fields=["GITHUB_TOKEN"],
        )
    host = GithubDirectHost(
        token=effective_token or "",
        api_url=settings.github_api_url,
        graphql_url=settings.github_graphql_url,
        timeout_seconds=settings.github_timeout_seconds,
    )
    return host, "github_api"


def get_provider_readiness() -> dict[str, dict[str, object]]:
    settings = get_settings()
    try:
        mode = _normalize_mode("github", settings.github_integration_mode)
    except ProviderConfigError as exc:
        return {
            "github": {
                "ready": False,
                "resolved_backend": "unavailable",
                "reason": exc.reason_code,
                "missing_fields": exc.missing_or_invalid_fields,
            }
        }

    if mode == "mock":
        return {
            "github": {
                "ready": True,
                "resolved_backend": "github_mock",
                "reason": "mock_mode",
                "missing_fields": [],
            }
        }

    # Requests may still bring their own bearer token without a server token.
    if not _usable(settings.github_token):
        return {
            "github": {
                "ready": True,
                "resolved_backend": "github_api",
                "reason": "per_request_token",
                "missing_fields": ["GITHUB_TOKEN"],
            }
        }

    return {
        "github": {
            "ready": True,
            "resolved_backend": "github_api",
            "reason": "ok",
            "missing_fields": [],
        }
    }
