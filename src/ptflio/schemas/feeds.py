"""Response schemas for the content feed endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ptflio.services.cache import CacheSource


class MediaItemSchema(BaseModel):
    """A video or post in provider-agnostic form."""

    id: str
    source: str = Field(..., description="Provider the item came from")
    title: str
    text: str
    url: str
    thumbnail_url: str | None = None
    timestamp: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class RepositorySchema(BaseModel):
    name: str
    full_name: str
    html_url: str
    description: str | None = None
    language: str | None = None
    stargazers_count: int = 0
    forks_count: int = 0
    created_at: str
    updated_at: str
    homepage: str | None = None
    topics: list[str] = Field(default_factory=list)
    fork: bool = False


class LanguageShareSchema(BaseModel):
    name: str
    bytes: int = Field(..., ge=0)
    percentage: int = Field(..., ge=0, le=100)


class RepositoryDetailSchema(BaseModel):
    """A single repository with its project-page extras."""

    repository: RepositorySchema
    languages: list[LanguageShareSchema] = Field(default_factory=list)
    commits: list[dict[str, Any]] = Field(default_factory=list)
    releases: list[dict[str, Any]] = Field(default_factory=list)
    readme: str = ""
    license: str | None = None
    open_issues_count: int = 0
    default_branch: str = "main"
    size: int = 0
    stats: dict[str, int] = Field(default_factory=dict)


class CachedResponse(BaseModel):
    """Fields shared by every read-through endpoint.

    Attributes:
        provider: Integration that produced the data
        cached: Whether the data was served from the cache
        source: Cache tier that served it ("none" when freshly fetched)
        metadata: Pagination tokens, totals and request duration
    """

    provider: str
    cached: bool = False
    source: CacheSource = CacheSource.NONE
    metadata: dict[str, Any] = Field(default_factory=dict)


class MediaFeedResponse(CachedResponse):
    count: int = Field(..., ge=0)
    items: list[MediaItemSchema] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "provider": "youtube",
                "cached": True,
                "source": "secondary",
                "metadata": {"total_results": 42, "next_page_token": "CAoQAA"},
                "count": 1,
                "items": [
                    {
                        "id": "dQw4w9WgXcQ",
                        "source": "youtube",
                        "title": "Building a portfolio",
                        "text": "Building a portfolio",
                        "url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
                        "thumbnail_url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
                        "timestamp": "2025-01-01T00:00:00Z",
                        "metadata": {"channel_id": "UC1234567890123456789012"},
                    }
                ],
            }
        }
    )


class RepositoryListResponse(CachedResponse):
    count: int = Field(..., ge=0)
    items: list[RepositorySchema] = Field(default_factory=list)


class RepositoryDetailResponse(CachedResponse):
    item: RepositoryDetailSchema


class RevalidateResponse(BaseModel):
    """Result of invalidating one cache tag."""

    tag: str
    revalidated: bool = True
    invalidated: int = Field(..., ge=0, description="Cache entries removed")
    timestamp: datetime
