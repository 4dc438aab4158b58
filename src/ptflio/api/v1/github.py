"""GitHub repository endpoints."""

from fastapi import APIRouter, status

from ptflio.api.v1.caching import read_through
from ptflio.dependencies import CacheDep, GitHubDep, SettingsDep
from ptflio.schemas.common import error_responses
from ptflio.schemas.feeds import RepositoryDetailResponse, RepositoryListResponse
from ptflio.services.cache import CacheManager

router = APIRouter()

GITHUB_ERRORS = {
    429: "Rate limit exceeded",
    502: "GitHub API error",
    503: "GitHub not configured",
}


@router.get(
    "",
    response_model=RepositoryListResponse,
    status_code=status.HTTP_200_OK,
    summary="List repositories",
    description="Public repositories of the configured account, newest update first.",
    responses=error_responses(GITHUB_ERRORS),
)
async def list_repositories(
    cache: CacheDep,
    settings: SettingsDep,
    github: GitHubDep,
) -> RepositoryListResponse:
    result = await read_through(
        cache,
        service=github.name,
        key=CacheManager.request_key("github", username=github.config.username),
        ttl=settings.github_cache_ttl,
        fetch=github.get_repositories,
        serialize=lambda repos: [repo.to_dict() for repo in repos],
        enabled=settings.cache_enabled,
    )
    return RepositoryListResponse(
        provider=github.name,
        cached=result.cached,
        source=result.source,
        metadata=result.metadata,
        count=len(result.data),
        items=result.data,
    )


@router.get(
    "/{name}",
    response_model=RepositoryDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Get repository details",
    description="Repository with languages, recent commits, releases and README.",
    responses=error_responses({400: "Invalid repository name", **GITHUB_ERRORS}),
)
async def get_repository(
    name: str,
    cache: CacheDep,
    settings: SettingsDep,
    github: GitHubDep,
) -> RepositoryDetailResponse:
    result = await read_through(
        cache,
        service=github.name,
        key=CacheManager.request_key(
            "github", username=github.config.username, repository=name
        ),
        ttl=settings.github_cache_ttl,
        fetch=lambda: github.get_repository(name),
        serialize=lambda details: details.to_dict(),
        enabled=settings.cache_enabled,
    )
    return RepositoryDetailResponse(
        provider=github.name,
        cached=result.cached,
        source=result.source,
        metadata=result.metadata,
        item=result.data,
    )
