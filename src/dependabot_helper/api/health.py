from __future__ import annotations

from fastapi import APIRouter

from dependabot_helper.config import get_settings
from dependabot_helper.services.cache import get_response_cache
from dependabot_helper.services.integrations.router import get_provider_readiness

router = APIRouter()


@router.get("/health")
async def health() -> dict:
    settings = get_settings()
    readiness = get_provider_readiness()
    return {
        "status": "ok",
        "app_version": settings.app_version,
        "build_sha": settings.build_sha,
        "provider_mode": settings.github_integration_mode.strip().lower(),
        "provider_contract_ok": bool(readiness["github"]["ready"]),
        "provider_readiness": readiness,
        "cache": get_response_cache().stats(),
        "users": settings.resolved_users(),
        "labels": settings.resolved_labels(),
    }
