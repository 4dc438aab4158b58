"""Instagram posts via a Juicer aggregation feed.

The Instagram API itself is not called; Juicer mirrors the account's posts
into a public feed which is read here and filtered to Instagram content.
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

JUICER_DOMAIN = "juicer.io"
JUICER_HUB_URL = "https://www.juicer.io/hub/{feed_id}"
INSTAGRAM_SOURCE = "Instagram"
MAX_TITLE_LENGTH = 120


@dataclass(frozen=True)
class InstagramConfig:
    feed_id: str
    feed_url: str = ""
    max_results: int = 10

    @property
    def hub_url(self) -> str:
        return self.feed_url or JUICER_HUB_URL.format(feed_id=self.feed_id)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "InstagramConfig":
        return cls(
            feed_id=settings.juicer_feed_id,
            feed_url=settings.juicer_feed_url,
            max_results=settings.instagram_max_results,
        )


@dataclass(frozen=True)
class PostOptions:
    max_results: int | None = None


class InstagramService(ExternalServiceClient):
    """Reads Instagram posts from a Juicer feed.

    Usage:
        ```python
        service = InstagramService(InstagramConfig(feed_id="my-feed"))
        result = await service.get_posts()
        ```
    """

    name = "instagram"
    base_url = "https://www.juicer.io"

    def __init__(self, config: InstagramConfig, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config

    def default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def validate_configuration(self) -> ValidationResult:
        result = validate_credential(self.config.feed_id, "JUICER_FEED_ID")
        if not result.is_valid:
            return result
        if JUICER_DOMAIN not in self.config.hub_url:
            return ValidationResult(
                is_valid=False,
                error="Juicer feed URL must point to juicer.io",
                suggestion="Use the public hub URL of your Juicer feed (https://www.juicer.io/...)",
            )
        return ValidationResult(is_valid=True)

    async def get_posts(
        self, options: PostOptions | None = None
    ) -> ServiceResult[list[MediaItem]]:
        """Fetch the newest Instagram posts from the feed."""
        return await self.fetch(options or PostOptions())

    async def _fetch(self, options: PostOptions) -> tuple[list[MediaItem], dict[str, Any]]:
        limit = (
            options.max_results
            if options.max_results is not None
            else self.config.max_results
        )
        if limit < 1:
            raise RequestValidationError(
                "max_results must be at least 1", details={"max_results": limit}
            )

        data = await self._request(f"/api/feeds/{self.config.feed_id}")
        posts = _extract_posts(data)
        items = [
            self._to_media_item(post, index)
            for index, post in enumerate(p for p in posts if _is_instagram(p))
        ][:limit]

        logger.info(
            "instagram_posts_fetched",
            feed_id=self.config.feed_id,
            post_count=len(posts),
            item_count=len(items),
        )
        return items, {
            "count": len(items),
            "integration": "juicer",
            "feed_url": self.config.hub_url,
        }

    def _to_media_item(self, post: dict[str, Any], index: int) -> MediaItem:
        caption = post.get("message") or post.get("full") or ""
        image = post.get("image") or None
        return MediaItem(
            id=str(post.get("id") or f"juicer_{self.config.feed_id}_{index}"),
            source=self.name,
            title=caption[:MAX_TITLE_LENGTH] or "Instagram Post",
            text=caption or "Instagram Post",
            url=post.get("external") or post.get("edit") or self.config.hub_url,
            thumbnail_url=image,
            timestamp=post.get("date") or datetime.now(UTC).isoformat(),
            metadata={"media_type": "IMAGE" if image else "CAROUSEL_ALBUM"},
        )


def _extract_posts(data: Any) -> list[dict[str, Any]]:
    """Juicer answers with ``posts`` as a list or as ``{"items": [...]}``."""
    if not isinstance(data, dict):
        return []
    posts = data.get("posts") or data.get("items") or []
    if isinstance(posts, dict):
        posts = posts.get("items") or []
    return [p for p in posts if isinstance(p, dict)]


def _is_instagram(post: dict[str, Any]) -> bool:
    source = post.get("source")
    if not source:
        return True
    return isinstance(source, dict) and source.get("source") == INSTAGRAM_SOURCE
