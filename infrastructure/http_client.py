"""Shared async HTTP client for outbound calls (email API)."""

from typing import Any

import httpx


class HttpClient:
    """Thin async wrapper around httpx.AsyncClient.

    Owned by the app lifespan; closed on shutdown.
    """

    def __init__(self, timeout: float = 5.0, max_connections: int = 20) -> None:
        self._client = httpx.AsyncClient(
            timeout=timeout,
            limits=httpx.Limits(max_connections=max_connections),
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.post(url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
