from __future__ import annotations

import structlog

from dependabot_helper.config.logging import bind_request_user, redact_secrets


def test_redacts_token_fields() -> None:
    event = redact_secrets(None, "info", {"event": "call", "token": "ghp_secret", "authorization": None})

    assert event["token"] == "***"
    assert event["authorization"] is None
    assert event["event"] == "call"


def test_bind_request_user_replaces_previous_context() -> None:
    structlog.contextvars.bind_contextvars(stale="value")

    bind_request_user("octocat")

    assert structlog.contextvars.get_contextvars() == {"github_user": "octocat"}
    structlog.contextvars.clear_contextvars()
