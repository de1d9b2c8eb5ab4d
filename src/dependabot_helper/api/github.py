from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Response
import structlog

from dependabot_helper.config.logging import bind_request_user
from dependabot_helper.models.github import RateLimits
from dependabot_helper.models.pull_request import MergeMethod, MergeReport
from dependabot_helper.models.repository import Owner, RepositoryPullRequests, RepositorySummary
from dependabot_helper.services.github_service import GithubService, create_github_service

router = APIRouter(prefix="/github")
logger = structlog.get_logger(__name__)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


async def get_github_service(authorization: Optional[str] = Header(default=None)) -> GithubService:
    service = await create_github_service(_bearer_token(authorization))
    bind_request_user(service.user.login)
    return service


@router.get("/owners", response_model=list[Owner])
async def list_owners(service: GithubService = Depends(get_github_service)) -> list[Owner]:
    return await service.get_owners()


@router.get("/repos/{owner}", response_model=list[RepositorySummary])
async def list_repositories(owner: str, service: GithubService = Depends(get_github_service)) -> list[RepositorySummary]:
    return await service.get_repositories(owner)


@router.get("/repos/{owner}/{name}/pulls", response_model=RepositoryPullRequests)
async def list_pull_requests(
    owner: str,
    name: str,
    service: GithubService = Depends(get_github_service),
) -> RepositoryPullRequests:
    return await service.get_pull_requests(owner, name)


@router.post("/repos/{owner}/{name}/pulls/merge", response_model=MergeReport)
async def merge_pull_requests(
    owner: str,
    name: str,
    merge_method: Optional[MergeMethod] = Query(default=None, alias="mergeMethod"),
    service: GithubService = Depends(get_github_service),
) -> MergeReport:
    report = await service.merge_pull_requests(owner, name, merge_method)
    logger.info(
        "Merge request completed",
        owner=owner,
        repository=name,
        user=service.user.login,
        merged=report.merged,
    )
    return report


@router.post("/repos/{owner}/{name}/pulls/{number}/approve", status_code=204)
async def approve_pull_request(
    owner: str,
    name: str,
    number: int,
    service: GithubService = Depends(get_github_service),
) -> Response:
    await service.approve_pull_request(owner, name, number)
    return Response(status_code=204)


@router.get("/rate-limits", response_model=RateLimits)
async def rate_limits(service: GithubService = Depends(get_github_service)) -> RateLimits:
    return await service.get_rate_limits()
