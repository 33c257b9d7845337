"""Shared HTTP handle for the GitHub adapters."""

import asyncio
from typing import Optional

import httpx


class GitHubApiError(RuntimeError):
    """Raised when a GitHub request fails outside the point-fetch outcomes."""

    def __init__(self, message: str, *, status: int, url: str) -> None:
        super().__init__(message)
        self.status = status
        self.url = url


class GraphQLQueryError(GitHubApiError):
    """Raised when a GraphQL response carries errors and no data."""

    def __init__(self, errors: list[dict], *, url: str) -> None:
        messages = "; ".join(str(error.get("message", error)) for error in errors) or "Unknown GraphQL error"
        super().__init__(messages, status=200, url=url)
        self.errors = errors


class GitHubSession:
    """Owns the single httpx client used for every GitHub request.

    The client is created on first use; the lock keeps that to one
    instance even if callers race.
    """

    def __init__(
        self,
        token: Optional[str],
        api_url: str = "https://api.github.com",
        graphql_url: str = "https://api.github.com/graphql",
        user_agent: str = "label-corpus/1.0",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.graphql_url = graphql_url
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._lock = asyncio.Lock()

    async def client(self) -> httpx.AsyncClient:
        """Return the shared client, creating it at most once."""
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    headers=self._get_headers(),
                    timeout=self.timeout,
                    transport=self._transport,
                )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _get_headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": self.user_agent,
        }

        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        return headers
