"""Cursor pagination over label-filtered items."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from label_corpus.core.entities import ItemKind, ItemPage, PaginationResult, RepositoryRef
from label_corpus.core.interfaces import GraphConnection

logger = logging.getLogger(__name__)


class BulkPaginator:
    """Walk every page of items carrying a label."""

    def __init__(
        self,
        connection: GraphConnection,
        page_size: int = 100,
        max_retries: int = 5,
        retry_delay: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.connection = connection
        self.page_size = page_size
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def fetch_by_label(
        self,
        label: str,
        repository: RepositoryRef,
        kind: ItemKind,
        expected_total: int = 0,
    ) -> PaginationResult:
        """Fetch all items of one kind carrying the label.

        Never raises: an empty first page or a failure on it yields an empty
        result, and a failure on a later page keeps what was already read.
        """
        items = kind.plural
        try:
            first = await self._fetch_page(repository, label, kind, after=None)

            if first is None:
                logger.warning("Skipping %s for %s with label '%s' and moving on.", items, repository, label)
                logger.warning("Expected %d %s with label '%s' but found none.", expected_total, items, label)
                return PaginationResult(items=[], total_count=expected_total)

            result = PaginationResult(items=list(first.items), total_count=first.total_count)
            after = first.end_cursor if first.has_next_page else None

            try:
                while after is not None:
                    page = await self._fetch_page(repository, label, kind, after=after)
                    if page is None:
                        logger.warning(
                            "Failed to get some %s for %s with label '%s'; moving on.", items, repository, label
                        )
                        break

                    result.items.extend(page.items)
                    after = page.end_cursor if page.has_next_page else None
            except Exception as e:
                logger.error("%s", e)
                logger.warning("Failed to get all %s for %s with label '%s'.", items, repository, label)
                logger.warning(
                    "Taking %d of %d %s for %s with label '%s'; moving on.",
                    len(result.items), result.total_count, items, repository, label,
                )

            return result
        except Exception as e:
            logger.error("%s", e)
            logger.warning("Failed to get any %s for %s with label '%s'; moving on.", items, repository, label)
            return PaginationResult(items=[], total_count=expected_total)
        finally:
            logger.info("Note: Expected %d %s with label '%s'.", expected_total, items, label)

    async def _fetch_page(
        self,
        repository: RepositoryRef,
        label: str,
        kind: ItemKind,
        after: Optional[str],
    ) -> Optional[ItemPage]:
        """Fetch one page, retrying empty responses with a fixed delay."""
        page = await self.connection.fetch_items_page(repository, label, kind, after, self.page_size)

        retries = 0
        while page is None and retries < self.max_retries:
            await self._sleep(self.retry_delay)
            page = await self.connection.fetch_items_page(repository, label, kind, after, self.page_size)
            retries += 1

        return page
