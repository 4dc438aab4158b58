"""On-demand cache invalidation by content tag."""

from datetime import UTC, datetime

from fastapi import APIRouter, status

from ptflio.core.exceptions import InvalidTagError
from ptflio.core.logging import get_logger
from ptflio.dependencies import CacheDep
from ptflio.schemas.common import error_responses
from ptflio.schemas.feeds import RevalidateResponse

logger = get_logger(__name__)

router = APIRouter()

# Each tag is the cache-key namespace of one integration
ALLOWED_TAGS = ["youtube", "instagram", "github"]


@router.post(
    "/{tag}",
    response_model=RevalidateResponse,
    status_code=status.HTTP_200_OK,
    summary="Revalidate a content tag",
    description="Drop every cached response of one integration.",
    responses=error_responses({400: "Unknown tag"}),
)
async def revalidate(tag: str, cache: CacheDep) -> RevalidateResponse:
    if tag not in ALLOWED_TAGS:
        raise InvalidTagError(tag, ALLOWED_TAGS)

    removed = await cache.invalidate_prefix(f"{tag}:")
    logger.info("cache_tag_revalidated", tag=tag, invalidated=removed)
    return RevalidateResponse(
        tag=tag,
        invalidated=removed,
        timestamp=datetime.now(UTC),
    )
