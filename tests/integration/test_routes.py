"""Integration tests for the content feed endpoints.

These tests run the full app with:
- The memory tier of the cache (no Redis)
- Mocked upstream HTTP clients (for predictable responses)
"""

from typing import Any

import pytest
from httpx import AsyncClient

from ptflio.container import ServiceContainer
from ptflio.services.youtube import YouTubeConfig
from tests.helpers import YOUTUBE_API_KEY, json_response, mock_http_client

# =============================================================================
# Fixtures
# =============================================================================

SEARCH_RESPONSE: dict[str, Any] = {
    "pageInfo": {"totalResults": 1, "resultsPerPage": 1},
    "items": [
        {
            "id": {"videoId": "dQw4w9WgXcQ"},
            "snippet": {
                "publishedAt": "2024-05-01T12:00:00Z",
                "title": "Portfolio walkthrough",
                "thumbnails": {"high": {"url": "https://i.ytimg.com/hq.jpg"}},
            },
        }
    ],
}

REPOS_RESPONSE: list[dict[str, Any]] = [
    {
        "name": "ptflio",
        "full_name": "octocat/ptflio",
        "html_url": "https://github.com/octocat/ptflio",
        "description": "Portfolio backend",
        "language": "Python",
        "stargazers_count": 10,
        "forks_count": 2,
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-06-01T00:00:00Z",
    }
]

FEED_RESPONSE: dict[str, Any] = {
    "posts": {
        "items": [
            {
                "id": 101,
                "message": "Sunset",
                "image": "https://images.juicer.io/101.jpg",
                "external": "https://www.instagram.com/p/101/",
                "date": "2024-05-01T10:00:00Z",
                "source": {"source": "Instagram"},
            }
        ]
    }
}


# =============================================================================
# YouTube
# =============================================================================


class TestYouTubeEndpoint:
    """Tests for GET /api/v1/youtube."""

    @pytest.mark.asyncio
    async def test_read_through(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.youtube._client = mock_http_client([json_response(200, SEARCH_RESPONSE)])

        first = await async_client.get("/api/v1/youtube")
        second = await async_client.get("/api/v1/youtube")

        assert first.status_code == 200
        data = first.json()
        assert data["provider"] == "youtube"
        assert data["cached"] is False
        assert data["source"] == "none"
        assert data["count"] == 1
        assert data["items"][0]["url"] == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        assert data["metadata"]["total_results"] == 1

        assert second.status_code == 200
        assert second.json()["cached"] is True
        assert second.json()["source"] == "secondary"
        assert second.json()["items"] == data["items"]
        assert container.youtube._client.request.await_count == 1

    @pytest.mark.asyncio
    async def test_query_options_form_distinct_keys(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.youtube._client = mock_http_client(
            [json_response(200, SEARCH_RESPONSE), json_response(200, SEARCH_RESPONSE)]
        )

        await async_client.get("/api/v1/youtube", params={"max_results": 5})
        response = await async_client.get("/api/v1/youtube", params={"max_results": 6})

        assert response.json()["cached"] is False
        assert container.youtube._client.request.await_count == 2

    @pytest.mark.asyncio
    async def test_misconfigured_is_503(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.youtube.config = YouTubeConfig(api_key="your-api-key", channel_id="")

        response = await async_client.get("/api/v1/youtube")

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "CONFIGURATION_ERROR"
        assert error["details"]["service"] == "youtube"
        assert error["details"]["type"] == "CONFIGURATION"
        assert "suggestion" in error["details"]

    @pytest.mark.asyncio
    async def test_upstream_error_is_502_without_key(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.youtube._client = mock_http_client(
            [json_response(403, {"error": f"key {YOUTUBE_API_KEY} invalid"})]
        )

        response = await async_client.get("/api/v1/youtube")

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "API_ERROR"
        assert YOUTUBE_API_KEY not in response.text

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.youtube._client = mock_http_client(
            [json_response(404), json_response(200, SEARCH_RESPONSE)]
        )

        failed = await async_client.get("/api/v1/youtube")
        recovered = await async_client.get("/api/v1/youtube")

        assert failed.status_code == 502
        assert recovered.status_code == 200
        assert recovered.json()["cached"] is False

    @pytest.mark.asyncio
    async def test_invalid_date_range_is_400(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.youtube._client = mock_http_client([])

        response = await async_client.get(
            "/api/v1/youtube",
            params={
                "published_after": "2024-06-01T00:00:00Z",
                "published_before": "2024-01-01T00:00:00Z",
            },
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_out_of_range_page_size_rejected(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/v1/youtube", params={"max_results": 0})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "INVALID_PARAMETERS"
        assert error["details"]["errors"][0]["loc"] == ["query", "max_results"]
        assert "request_id" in error


# =============================================================================
# GitHub
# =============================================================================


class TestGitHubEndpoints:
    """Tests for GET /api/v1/github and /api/v1/github/{name}."""

    @pytest.mark.asyncio
    async def test_list_repositories(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.github._client = mock_http_client([json_response(200, REPOS_RESPONSE)])

        response = await async_client.get("/api/v1/github")

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "github"
        assert data["count"] == 1
        assert data["items"][0]["full_name"] == "octocat/ptflio"

    @pytest.mark.asyncio
    async def test_repository_detail(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.github._client = mock_http_client(
            [
                json_response(200, REPOS_RESPONSE[0]),
                json_response(200, {"Python": 100}),
                json_response(200, []),
                json_response(200, []),
                json_response(404),
            ]
        )

        response = await async_client.get("/api/v1/github/ptflio")

        assert response.status_code == 200
        item = response.json()["item"]
        assert item["repository"]["name"] == "ptflio"
        assert item["languages"] == [{"name": "Python", "bytes": 100, "percentage": 100}]
        assert item["stats"]["total_languages"] == 1
        assert item["readme"] == ""

    @pytest.mark.asyncio
    async def test_missing_repository(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.github._client = mock_http_client([json_response(404)])

        response = await async_client.get("/api/v1/github/missing")

        assert response.status_code == 502
        assert response.json()["error"]["details"]["status_code"] == 404


# =============================================================================
# Instagram
# =============================================================================


class TestInstagramEndpoint:
    @pytest.mark.asyncio
    async def test_get_posts(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.instagram._client = mock_http_client([json_response(200, FEED_RESPONSE)])

        response = await async_client.get("/api/v1/instagram")

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "instagram"
        assert data["items"][0]["thumbnail_url"] == "https://images.juicer.io/101.jpg"
        assert data["metadata"]["integration"] == "juicer"


# =============================================================================
# Revalidation
# =============================================================================


class TestRevalidateEndpoint:
    """Tests for POST /api/v1/revalidate/{tag}."""

    @pytest.mark.asyncio
    async def test_revalidate_drops_cached_responses(
        self, async_client: AsyncClient, container: ServiceContainer
    ) -> None:
        container.youtube._client = mock_http_client(
            [json_response(200, SEARCH_RESPONSE), json_response(200, SEARCH_RESPONSE)]
        )
        container.github._client = mock_http_client([json_response(200, REPOS_RESPONSE)])
        await async_client.get("/api/v1/youtube")
        await async_client.get("/api/v1/github")

        response = await async_client.post("/api/v1/revalidate/youtube")

        assert response.status_code == 200
        data = response.json()
        assert data["tag"] == "youtube"
        assert data["revalidated"] is True
        assert data["invalidated"] == 1
        assert "timestamp" in data

        assert (await async_client.get("/api/v1/youtube")).json()["cached"] is False
        assert (await async_client.get("/api/v1/github")).json()["cached"] is True

    @pytest.mark.asyncio
    async def test_revalidate_empty_tag(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/v1/revalidate/instagram")

        assert response.status_code == 200
        assert response.json()["invalidated"] == 0

    @pytest.mark.asyncio
    async def test_invalid_tag(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/v1/revalidate/twitter")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_TAG"
        assert error["details"]["allowed_tags"] == ["youtube", "instagram", "github"]
