from __future__ import annotations

import os
from collections.abc import AsyncIterator
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from dependabot_helper.models.github import Repository
from dependabot_helper.services.cache import ResponseCache
from dependabot_helper.services.integrations.cached import CachingGithubHost
from dependabot_helper.services.integrations.mock_providers import MockGithubHost


def reset_singletons() -> None:
    import dependabot_helper.config.settings as settings_module
    import dependabot_helper.services.cache as cache_module
    import dependabot_helper.services.integrations.router as router_module

    settings_module.get_settings.cache_clear()
    cache_module._response_cache = None
    router_module._mock_host = None


@pytest.fixture(autouse=True)
def _isolated_singletons():
    reset_singletons()
    yield
    reset_singletons()


@pytest.fixture
def mock_host() -> MockGithubHost:
    host = MockGithubHost()
    host.add_repository(
        Repository(id=10, name="app", owner="octo-org", html_url="https://github.com/octo-org/app")
    )
    return host


@pytest.fixture
def cache() -> ResponseCache:
    return ResponseCache(short_lifetime=20.0, long_lifetime=3600.0)


@pytest.fixture
def cached_host(mock_host: MockGithubHost, cache: ResponseCache) -> CachingGithubHost:
    return CachingGithubHost(mock_host, cache, user_id="1")


@pytest.fixture
async def test_client() -> AsyncIterator[AsyncClient]:
    env_overrides = {
        "GITHUB_INTEGRATION_MODE": "mock",
        "DEPENDABOT_USERS": "dependabot[bot]",
        "DEPENDABOT_LABELS": "",
        "DEPENDABOT_MERGE_PREFERENCES": "",
        "DEPENDABOT_MERGE_RETRY_WAITS": "0",
        "DEPENDABOT_INCLUDE_FORKS": "false",
        "DISABLE_CACHING": "false",
    }

    with patch.dict(os.environ, env_overrides, clear=False):
        reset_singletons()

        from dependabot_helper.main import create_app

        app = create_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client

    reset_singletons()
