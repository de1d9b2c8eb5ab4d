from __future__ import annotations

import pytest

from dependabot_helper.services.integrations.base import ProviderConfigError
from dependabot_helper.services.integrations.github_direct import GithubDirectHost
from dependabot_helper.services.integrations.mock_providers import MockGithubHost
from dependabot_helper.services.integrations.router import get_github_host, get_provider_readiness


def test_router_returns_mock_in_explicit_mock_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_INTEGRATION_MODE", "mock")

    host, backend = get_github_host()
    again, _ = get_github_host()

    assert isinstance(host, MockGithubHost)
    assert backend == "github_mock"
    assert host is again


def test_router_raises_in_api_mode_without_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_INTEGRATION_MODE", "api")
    monkeypatch.setenv("GITHUB_TOKEN", "placeholder")

    with pytest.raises(ProviderConfigError) as exc_info:
        get_github_host()

    assert exc_info.value.reason_code == "missing_or_invalid_config"
    assert exc_info.value.missing_or_invalid_fields == ["GITHUB_TOKEN"]


def test_request_token_overrides_missing_server_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_INTEGRATION_MODE", "api")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    host, backend = get_github_host("ghp_user_token")

    assert isinstance(host, GithubDirectHost)
    assert backend == "github_api"
    assert host._token == "ghp_user_token"


def test_invalid_mode_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_INTEGRATION_MODE", "sandbox")

    with pytest.raises(ProviderConfigError) as exc_info:
        get_github_host()

    assert exc_info.value.reason_code == "invalid_mode"
    readiness = get_provider_readiness()["github"]
    assert readiness["ready"] is False
    assert readiness["missing_fields"] == ["GITHUB_INTEGRATION_MODE"]


def test_provider_readiness_without_server_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_INTEGRATION_MODE", "api")
    monkeypatch.setenv("GITHUB_TOKEN", "")

    readiness = get_provider_readiness()["github"]

    assert readiness["ready"] is True
    assert readiness["reason"] == "per_request_token"
    assert readiness["missing_fields"] == ["GITHUB_TOKEN"]


def test_provider_readiness_ok_with_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_INTEGRATION_MODE", "API")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_real")

    readiness = get_provider_readiness()["github"]

    assert readiness == {
        "ready": True,
        "resolved_backend": "github_api",
        "reason": "ok",
        "missing_fields": [],
    }
