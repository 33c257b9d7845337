"""Core domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ItemKind(str, Enum):
    """Kind of repository item."""

    ISSUE = "issue"
    PULL_REQUEST = "pull_request"

    @property
    def plural(self) -> str:
        return "issues" if self is ItemKind.ISSUE else "pull requests"


@dataclass(frozen=True)
class RepositoryRef:
    """Repository identified by owner and name."""

    owner: str
    name: str

    def __post_init__(self) -> None:
        if not self.owner:
            raise ValueError("Repository owner cannot be empty")
        if not self.name:
            raise ValueError("Repository name cannot be empty")
        if "/" in self.owner or "/" in self.name:
            raise ValueError("Repository owner and name cannot contain '/'")

    @classmethod
    def parse(cls, value: str) -> "RepositoryRef":
        """Parse an 'owner/name' string."""
        parts = (value or "").strip().split("/")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f"Expected 'owner/name', got {value!r}")
        return cls(owner=parts[0], name=parts[1])

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class LabelNode:
    """Label as returned by the GraphQL labels connection."""

    name: str
    color: str
    issue_count: int = 0
    pull_request_count: int = 0


@dataclass(frozen=True)
class RestLabel:
    """Label as embedded in REST issue payloads."""

    name: str
    color: str
    id: Optional[int] = None
    description: Optional[str] = None


@dataclass
class RemoteItem:
    """Issue or pull request fetched from the remote API."""

    number: int
    title: str
    body: Optional[str]
    author: Optional[str]
    created_at: datetime
    is_pull_request: bool = False
    labels: list[RestLabel] = field(default_factory=list)
    file_paths: list[str] = field(default_factory=list)


@dataclass
class ItemPage:
    """One page of a cursor-paginated item query."""

    items: list[RemoteItem]
    total_count: int
    has_next_page: bool
    end_cursor: Optional[str]


@dataclass
class PaginationResult:
    """Items accumulated for one (label, kind) pair."""

    items: list[RemoteItem]
    total_count: int


# Point-fetch outcomes


@dataclass(frozen=True)
class Found(Generic[T]):
    value: T


@dataclass(frozen=True)
class NotFound:
    message: str = "Not found"


@dataclass(frozen=True)
class RateLimited:
    reset_at: datetime
    message: str = "Rate limit exceeded"


@dataclass(frozen=True)
class TransientError:
    message: str = "Empty response"


@dataclass(frozen=True)
class Failed:
    message: str


FetchOutcome = Union[Found[T], NotFound, RateLimited, TransientError, Failed]
