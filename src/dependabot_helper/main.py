from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from dependabot_helper.api import github_router, health_router
from dependabot_helper.config import get_settings
from dependabot_helper.config.logging import configure_logging
from dependabot_helper.services.integrations.base import (
    ConfigurationError,
    ForbiddenError,
    GithubApiError,
    MergeMethodError,
    NotFoundError,
    ProviderConfigError,
    RateLimitedError,
    UnauthorizedError,
)
from dependabot_helper.services.integrations.router import get_provider_readiness

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def _lifespan(_: FastAPI):
    settings = get_settings()
    readiness = get_provider_readiness()["github"]
    if not bool(readiness["ready"]):
        raise RuntimeError(
            "Startup preflight failed: GitHub provider not ready "
            f"(reason={readiness['reason']}, missing_fields={readiness['missing_fields']})"
        )
    logger.info(
        "Dependabot helper started",
        provider_backend=readiness["resolved_backend"],
        provider_reason=readiness["reason"],
        users=settings.resolved_users(),
        caching_disabled=settings.disable_caching,
    )
    yield


def _github_error_status(exc: GithubApiError) -> int:
    if isinstance(exc, RateLimitedError):
        return 429
    if isinstance(exc, (NotFoundError, UnauthorizedError, ForbiddenError)):
        return exc.status_code
    return 502


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GithubApiError)
    async def _github_api_error(request: Request, exc: GithubApiError) -> JSONResponse:
        logger.warning(
            "GitHub API error",
            path=request.url.path,
            code=exc.code,
            status=exc.status_code,
            error=exc.message,
        )
        return JSONResponse(status_code=_github_error_status(exc), content={"detail": exc.as_dict()})

    @app.exception_handler(ConfigurationError)
    async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
        status_code = 500
        if isinstance(exc, MergeMethodError):
            status_code = 409
        elif isinstance(exc, ProviderConfigError):
            status_code = 503
        logger.error("Configuration error", path=request.url.path, code=exc.code, error=str(exc))
        return JSONResponse(status_code=status_code, content={"detail": exc.as_dict()})


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Dependabot Helper", version=settings.app_version or "1.0.0", lifespan=_lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.resolved_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(github_router)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run("dependabot_helper.main:app", host="0.0.0.0", port=8080, reload=False)


if __name__ == "__main__":
    main()
