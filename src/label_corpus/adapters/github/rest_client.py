"""GitHub REST adapter for point lookups."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from label_corpus.adapters.github.graphql_client import parse_datetime
from label_corpus.adapters.github.session import GitHubSession
from label_corpus.core import (
    Failed,
    FetchOutcome,
    Found,
    ItemClient,
    NotFound,
    RateLimited,
    RemoteItem,
    RepositoryRef,
    RestLabel,
    TransientError,
)

logger = logging.getLogger(__name__)

# GitHub caps the pull request files listing at 3000 entries.
MAX_FILE_PAGES = 30


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text[:200]


def rate_limit_reset(response: httpx.Response) -> Optional[datetime]:
    """Reset time if the response is a rate-limit rejection, else None."""
    if response.status_code not in (403, 429):
        return None

    remaining = _parse_int(response.headers.get("X-RateLimit-Remaining"))
    reset = _parse_int(response.headers.get("X-RateLimit-Reset"))
    retry_after = _parse_int(response.headers.get("Retry-After"))
    now = datetime.now(timezone.utc)

    if retry_after is not None:
        return now + timedelta(seconds=retry_after)
    if remaining == 0:
        return datetime.fromtimestamp(reset, tz=timezone.utc) if reset is not None else now
    if response.status_code == 429 or "rate limit" in _error_message(response).lower():
        return datetime.fromtimestamp(reset, tz=timezone.utc) if reset is not None else now
    return None


def to_outcome(response: httpx.Response) -> FetchOutcome[Any]:
    """Map an HTTP response onto a point-fetch outcome."""
    status = response.status_code

    if 200 <= status < 300:
        if not response.content:
            return TransientError("Empty response")
        return Found(response.json())

    if status in (404, 410):
        return NotFound(_error_message(response))

    reset_at = rate_limit_reset(response)
    if reset_at is not None:
        return RateLimited(reset_at=reset_at, message=_error_message(response))

    if status >= 500:
        return TransientError(f"Server error {status}")

    return Failed(f"HTTP {status}: {_error_message(response)}")


class GitHubRestClient(ItemClient):
    """Point lookups against the GitHub REST API."""

    def __init__(self, session: GitHubSession) -> None:
        self.session = session

    async def get_item(self, repository: RepositoryRef, number: int) -> FetchOutcome[RemoteItem]:
        """Fetch one issue or pull request by number."""
        outcome = await self._get(f"/repos/{repository.owner}/{repository.name}/issues/{number}")
        if isinstance(outcome, Found):
            return Found(self._create_item(outcome.value))
        return outcome

    async def get_pull_request_files(self, repository: RepositoryRef, number: int) -> FetchOutcome[list[str]]:
        """Fetch all changed file paths of a pull request."""
        paths: list[str] = []
        per_page = 100

        for page in range(1, MAX_FILE_PAGES + 1):
            outcome = await self._get(
                f"/repos/{repository.owner}/{repository.name}/pulls/{number}/files",
                params={"per_page": per_page, "page": page},
            )
            if not isinstance(outcome, Found):
                return outcome

            files = outcome.value or []
            paths.extend(f["filename"] for f in files)
            if len(files) < per_page:
                break

        return Found(paths)

    async def list_items_page(
        self, repository: RepositoryRef, page: int, per_page: int = 100
    ) -> FetchOutcome[list[RemoteItem]]:
        """Fetch one page of all issues and pull requests (any state)."""
        outcome = await self._get(
            f"/repos/{repository.owner}/{repository.name}/issues",
            params={"state": "all", "per_page": per_page, "page": page},
        )
        if isinstance(outcome, Found):
            return Found([self._create_item(payload) for payload in outcome.value or []])
        return outcome

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> FetchOutcome[Any]:
        client = await self.session.client()
        url = f"{self.session.api_url}{path}"
        try:
            response = await client.get(url, params=params)
        except httpx.RequestError as e:
            logger.debug("Network error for %s: %s", url, e)
            return TransientError(f"Network error: {e}")
        return to_outcome(response)

    def _create_item(self, payload: dict) -> RemoteItem:
        """Create item from a REST issue payload."""
        user = payload.get("user") or {}
        return RemoteItem(
            number=payload["number"],
            title=payload.get("title") or "",
            body=payload.get("body"),
            author=user.get("login"),
            created_at=parse_datetime(payload["created_at"]),
            is_pull_request=payload.get("pull_request") is not None,
            labels=[
                RestLabel(
                    name=label["name"],
                    color=label.get("color") or "",
                    id=label.get("id"),
                    description=label.get("description"),
                )
                for label in payload.get("labels") or []
                if isinstance(label, dict)
            ],
        )
