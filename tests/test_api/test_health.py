from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient


@pytest.mark.asyncio
async def test_health_reports_mock_mode(test_client):
    response = await test_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["provider_mode"] == "mock"
    assert body["provider_contract_ok"] is True
    assert body["provider_readiness"]["github"]["reason"] == "mock_mode"
    assert body["users"] == ["dependabot[bot]"]
    assert body["cache"]["enabled"] is True
    assert "app_version" in body
    assert "build_sha" in body


@pytest.mark.asyncio
async def test_health_reports_per_request_token_mode():
    import dependabot_helper.config.settings as settings_module
    import dependabot_helper.services.cache as cache_module

    env_overrides = {
        "GITHUB_INTEGRATION_MODE": "api",
        "GITHUB_TOKEN": "",
        "DISABLE_CACHING": "true",
        "APP_VERSION": "1.2.3",
    }
    with patch.dict(os.environ, env_overrides, clear=False):
        settings_module.get_settings.cache_clear()
        cache_module._response_cache = None
        from dependabot_helper.main import create_app

        app = create_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["provider_mode"] == "api"
    assert body["provider_contract_ok"] is True
    assert body["provider_readiness"]["github"]["missing_fields"] == ["GITHUB_TOKEN"]
    assert body["cache"]["enabled"] is False
    assert body["app_version"] == "1.2.3"
