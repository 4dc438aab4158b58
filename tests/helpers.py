"""Shared test doubles: clocks, sleeps and HTTP/Redis stand-ins."""

from collections.abc import AsyncIterator, Iterable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx

# Shaped like real credentials so configuration checks pass
YOUTUBE_API_KEY = "AIza" + "S" * 35
YOUTUBE_CHANNEL_ID = "UC" + "a1B2c3D4e5F6g7H8i9J0kL"
GITHUB_TOKEN = "ghp_" + "T" * 36


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def json_response(
    status_code: int = 200, data: Any = None, text: str | None = None
) -> httpx.Response:
    """Build an httpx response the way the API would answer."""
    if text is not None:
        return httpx.Response(status_code, text=text)
    return httpx.Response(status_code, json=data if data is not None else {})


def mock_http_client(responses: Iterable[Any]) -> MagicMock:
    """HTTP client whose ``request`` yields (or raises) each item in turn."""
    client = MagicMock(spec=httpx.AsyncClient)
    client.request = AsyncMock(side_effect=list(responses))
    client.is_closed = False
    return client


def async_iter(items: Iterable[Any]) -> Any:
    """Return a callable producing an async iterator (for ``scan_iter``)."""

    async def _gen(*args: Any, **kwargs: Any) -> AsyncIterator[Any]:
        for item in items:
            yield item

    return _gen
