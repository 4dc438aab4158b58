"""Instagram feed endpoint (via Juicer)."""

from fastapi import APIRouter, status

from ptflio.api.v1.caching import read_through
from ptflio.dependencies import CacheDep, InstagramDep, SettingsDep
from ptflio.schemas.common import error_responses
from ptflio.schemas.feeds import MediaFeedResponse
from ptflio.services.cache import CacheManager

router = APIRouter()


@router.get(
    "",
    response_model=MediaFeedResponse,
    status_code=status.HTTP_200_OK,
    summary="List Instagram posts",
    responses=error_responses({502: "Juicer API error", 503: "Feed not configured"}),
)
async def get_posts(
    cache: CacheDep,
    settings: SettingsDep,
    instagram: InstagramDep,
) -> MediaFeedResponse:
    result = await read_through(
        cache,
        service=instagram.name,
        key=CacheManager.request_key("instagram", feed_id=instagram.config.feed_id),
        ttl=settings.instagram_cache_ttl,
        fetch=instagram.get_posts,
        serialize=lambda items: [item.to_dict() for item in items],
        enabled=settings.cache_enabled,
    )
    return MediaFeedResponse(
        provider=instagram.name,
        cached=result.cached,
        source=result.source,
        metadata=result.metadata,
        count=len(result.data),
        items=result.data,
    )
