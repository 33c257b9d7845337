"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from typing import Optional

from label_corpus.core.entities import (
    FetchOutcome,
    ItemKind,
    ItemPage,
    LabelNode,
    RemoteItem,
    RepositoryRef,
)


class GraphConnection(ABC):
    """Interface for the bulk (GraphQL) side of the remote API."""

    @abstractmethod
    async def labels_with_counts(self, repository: RepositoryRef) -> list[LabelNode]:
        """Fetch every label of the repository with its issue and PR counts."""
        pass

    @abstractmethod
    async def fetch_items_page(
        self,
        repository: RepositoryRef,
        label: str,
        kind: ItemKind,
        after: Optional[str],
        first: int,
    ) -> Optional[ItemPage]:
        """Fetch one page of items carrying the label; None for an empty response."""
        pass


class ItemClient(ABC):
    """Interface for point lookups (REST side of the remote API)."""

    @abstractmethod
    async def get_item(self, repository: RepositoryRef, number: int) -> FetchOutcome[RemoteItem]:
        """Fetch one issue or pull request by number."""
        pass

    @abstractmethod
    async def get_pull_request_files(self, repository: RepositoryRef, number: int) -> FetchOutcome[list[str]]:
        """Fetch the changed file paths of one pull request."""
        pass

    @abstractmethod
    async def list_items_page(
        self, repository: RepositoryRef, page: int, per_page: int = 100
    ) -> FetchOutcome[list[RemoteItem]]:
        """Fetch one page of all issues and pull requests (any state)."""
        pass
