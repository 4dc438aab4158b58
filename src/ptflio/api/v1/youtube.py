"""YouTube channel video endpoint."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from ptflio.api.v1.caching import read_through
from ptflio.core.logging import get_logger
from ptflio.dependencies import CacheDep, SettingsDep, YouTubeDep
from ptflio.schemas.common import error_responses
from ptflio.schemas.feeds import MediaFeedResponse
from ptflio.services.cache import CacheManager
from ptflio.services.youtube import ChannelVideoOptions

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=MediaFeedResponse,
    status_code=status.HTTP_200_OK,
    summary="List channel videos",
    description="Latest videos of the configured channel, read through the cache.",
    responses=error_responses(
        {
            400: "Invalid options",
            429: "Rate limit exceeded",
            502: "YouTube API error",
            503: "YouTube not configured",
        }
    ),
)
async def get_channel_videos(
    cache: CacheDep,
    settings: SettingsDep,
    youtube: YouTubeDep,
    max_results: Annotated[
        int | None, Query(ge=1, le=50, description="Videos per page")
    ] = None,
    page_token: Annotated[str | None, Query(description="Page token")] = None,
    published_after: Annotated[
        str | None, Query(description="RFC 3339 lower bound")
    ] = None,
    published_before: Annotated[
        str | None, Query(description="RFC 3339 upper bound")
    ] = None,
) -> MediaFeedResponse:
    options = ChannelVideoOptions(
        max_results=max_results,
        page_token=page_token,
        published_after=published_after,
        published_before=published_before,
    )
    key = CacheManager.request_key(
        "youtube",
        channel_id=youtube.config.channel_id,
        max_results=max_results,
        page_token=page_token,
        published_after=published_after,
        published_before=published_before,
    )

    result = await read_through(
        cache,
        service=youtube.name,
        key=key,
        ttl=settings.youtube_cache_ttl,
        fetch=lambda: youtube.get_channel_videos(options),
        serialize=lambda items: [item.to_dict() for item in items],
        enabled=settings.cache_enabled,
    )

    logger.info(
        "youtube_videos_served",
        count=len(result.data),
        cached=result.cached,
        source=result.source.value,
    )
    return MediaFeedResponse(
        provider=youtube.name,
        cached=result.cached,
        source=result.source,
        metadata=result.metadata,
        count=len(result.data),
        items=result.data,
    )
