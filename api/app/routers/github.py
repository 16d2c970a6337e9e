"""Portfolio GitHub data routes.

- /api/github -> profile, recent repos, declared project repos, activity (always 200)
- /api/github/projects -> declared projects merged with their repositories
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.models.github import ProjectShowcase, Provenance
from app.services.github_data_service import GitHubDataService

router = APIRouter()

# Matches the one-hour revalidation window the page is deployed with.
CACHE_CONTROL = "public, s-maxage=3600, stale-while-revalidate=60"
# Degraded payloads must not pin the edge for an hour after GitHub recovers.
DEGRADED_CACHE_CONTROL = "public, s-maxage=60"


def cache_control_for(provenance: Provenance) -> str:
    return CACHE_CONTROL if provenance == Provenance.LIVE else DEGRADED_CACHE_CONTROL


def get_github_service(request: Request) -> GitHubDataService:
    return request.app.state.github_service


@router.get("/github")
async def get_github_data(service: GitHubDataService = Depends(get_github_service)) -> JSONResponse:
    data = await service.get_data()
    return JSONResponse(
        content=data.to_payload(),
        status_code=200,
        headers={
            "Cache-Control": cache_control_for(data.provenance),
            "X-Data-Provenance": data.provenance.value,
        },
    )


@router.get("/github/projects", response_model=ProjectShowcase, response_model_by_alias=True)
async def get_github_projects(
    service: GitHubDataService = Depends(get_github_service),
) -> ProjectShowcase:
    return await service.get_showcase()
