"""YouTube Data API v3 client.

Lists the uploads of one configured channel through the search endpoint and
maps them to ``MediaItem`` records.

See: https://developers.google.com/youtube/v3/docs/search/list
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from ptflio.core.exceptions import RequestValidationError
from ptflio.services.base import ExternalServiceClient, MediaItem, ServiceResult
from ptflio.services.credentials import ValidationResult, validate_credential

if TYPE_CHECKING:
    from ptflio.config import Settings

logger = structlog.get_logger(__name__)

API_KEY_PREFIX = "AIza"
API_KEY_LENGTH = 39
CHANNEL_ID_PREFIX = "UC"
CHANNEL_ID_LENGTH = 24
MAX_PAGE_SIZE = 50

THUMBNAIL_PREFERENCE = ("maxres", "high", "medium", "default")


@dataclass(frozen=True)
class YouTubeConfig:
    """Credentials and listing defaults for one channel."""

    api_key: str
    channel_id: str
    max_results: int = 10
    order: str = "date"
    safe_search: str = "moderate"
    video_duration: str | None = None
    video_definition: str | None = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "YouTubeConfig":
        return cls(
            api_key=settings.youtube_api_key.get_secret_value(),
            channel_id=settings.youtube_channel_id,
            max_results=settings.youtube_max_results,
            order=settings.youtube_order.value,
            safe_search=settings.youtube_safe_search.value,
        )


@dataclass(frozen=True)
class ChannelVideoOptions:
    """Per-call filters for ``get_channel_videos``."""

    max_results: int | None = None
    page_token: str | None = None
    published_after: str | None = None
    published_before: str | None = None


class YouTubeService(ExternalServiceClient):
    """Async client for the YouTube search endpoint.

    Usage:
        ```python
        service = YouTubeService(YouTubeConfig.from_settings(settings))
        result = await service.get_channel_videos(ChannelVideoOptions(max_results=5))
        if result.success:
            videos = result.data
        ```
    """

    name = "youtube"
    base_url = "https://www.googleapis.com/youtube/v3"

    def __init__(self, config: YouTubeConfig, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config

    def secrets(self) -> tuple[str, ...]:
        return (self.config.api_key,) if self.config.api_key else ()

    def validate_configuration(self) -> ValidationResult:
        """Check that the API key and channel id look real."""
        result = validate_credential(self.config.api_key, "YOUTUBE_API_KEY")
        if not result.is_valid:
            return result
        result = validate_credential(self.config.channel_id, "YOUTUBE_CHANNEL_ID")
        if not result.is_valid:
            return result

        key = self.config.api_key
        if not key.startswith(API_KEY_PREFIX) or len(key) != API_KEY_LENGTH:
            return ValidationResult(
                is_valid=False,
                error="Invalid YouTube API key format",
                suggestion=(
                    f'YouTube API keys should start with "{API_KEY_PREFIX}" and be '
                    f"{API_KEY_LENGTH} characters long"
                ),
            )

        channel = self.config.channel_id
        if not channel.startswith(CHANNEL_ID_PREFIX) or len(channel) != CHANNEL_ID_LENGTH:
            return ValidationResult(
                is_valid=False,
                error="Invalid YouTube channel ID format",
                suggestion=(
                    f'YouTube channel IDs should start with "{CHANNEL_ID_PREFIX}" and be '
                    f"{CHANNEL_ID_LENGTH} characters long"
                ),
            )

        return ValidationResult(is_valid=True)

    async def get_channel_videos(
        self, options: ChannelVideoOptions | None = None
    ) -> ServiceResult[list[MediaItem]]:
        """Fetch one page of the channel's videos.

        Returns:
            ServiceResult with MediaItems; metadata carries ``total_results``,
            ``results_per_page``, ``next_page_token`` and ``prev_page_token``
        """
        return await self.fetch(options or ChannelVideoOptions())

    async def _fetch(
        self, options: ChannelVideoOptions
    ) -> tuple[list[MediaItem], dict[str, Any]]:
        params = self._build_params(options)
        data = await self._request("/search", params=params)

        items = self._parse_items(data)
        page_info = data.get("pageInfo") or {}
        metadata = {
            "total_results": page_info.get("totalResults", 0),
            "results_per_page": page_info.get("resultsPerPage", 0),
            "next_page_token": data.get("nextPageToken"),
            "prev_page_token": data.get("prevPageToken"),
        }

        logger.info(
            "youtube_videos_fetched",
            channel_id=self.config.channel_id,
            item_count=len(items),
            total_results=metadata["total_results"],
        )
        return items, metadata

    def _build_params(self, options: ChannelVideoOptions) -> dict[str, Any]:
        max_results = (
            options.max_results
            if options.max_results is not None
            else self.config.max_results
        )
        if not 1 <= max_results <= MAX_PAGE_SIZE:
            raise RequestValidationError(
                f"max_results must be between 1 and {MAX_PAGE_SIZE}",
                details={"max_results": max_results},
            )

        after = _parse_timestamp(options.published_after, "published_after")
        before = _parse_timestamp(options.published_before, "published_before")
        if after and before and after >= before:
            raise RequestValidationError(
                "published_after must be earlier than published_before",
                details={
                    "published_after": options.published_after,
                    "published_before": options.published_before,
                },
            )

        params: dict[str, Any] = {
            "part": "snippet",
            "channelId": self.config.channel_id,
            "type": "video",
            "order": self.config.order,
            "maxResults": str(max_results),
            "safeSearch": self.config.safe_search,
            "key": self.config.api_key,
        }
        if options.page_token:
            params["pageToken"] = options.page_token
        if options.published_after:
            params["publishedAfter"] = options.published_after
        if options.published_before:
            params["publishedBefore"] = options.published_before
        if self.config.video_duration:
            params["videoDuration"] = self.config.video_duration
        if self.config.video_definition:
            params["videoDefinition"] = self.config.video_definition
        return params

    def _parse_items(self, data: dict[str, Any]) -> list[MediaItem]:
        """Map search results to MediaItems."""
        items = []
        for item in data.get("items") or []:
            raw_id = item.get("id")
            video_id = raw_id.get("videoId") if isinstance(raw_id, dict) else raw_id
            snippet = item.get("snippet") or {}
            title = snippet.get("title") or ""

            items.append(
                MediaItem(
                    id=str(video_id),
                    source=self.name,
                    title=title,
                    text=title,
                    url=f"https://www.youtube.com/watch?v={video_id}" if video_id else "",
                    thumbnail_url=best_thumbnail(snippet.get("thumbnails")),
                    timestamp=snippet.get("publishedAt") or datetime.now(UTC).isoformat(),
                    metadata={"channel_id": self.config.channel_id},
                )
            )
        return items


def best_thumbnail(thumbnails: dict[str, Any] | None) -> str | None:
    """Pick the highest-resolution thumbnail URL available."""
    for size in THUMBNAIL_PREFERENCE:
        url = ((thumbnails or {}).get(size) or {}).get("url")
        if url:
            return url
    return None


def _parse_timestamp(value: str | None, field_name: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise RequestValidationError(
            f"{field_name} must be an RFC 3339 timestamp",
            details={field_name: value},
        ) from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
