"""Recovery of items the bulk download missed, one point lookup at a time."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from label_corpus.core.corpus import Corpus, CorpusLine, TrainingItem
from label_corpus.core.entities import (
    FetchOutcome,
    Found,
    NotFound,
    RateLimited,
    RemoteItem,
    RepositoryRef,
    TransientError,
)
from label_corpus.core.interfaces import ItemClient

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MissingItemResolver:
    """Fetch candidate items by number and turn them into corpus rows."""

    def __init__(
        self,
        client: ItemClient,
        label_filter: Callable[[Any], bool],
        rate_limit_buffer: timedelta = timedelta(minutes=1),
        max_retries: int = 5,
        retry_delay: float = 5.0,
        progress_interval: int = 100,
        page_size: int = 100,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.client = client
        self.label_filter = label_filter
        self.rate_limit_buffer = rate_limit_buffer
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.progress_interval = max(1, progress_interval)
        self.page_size = page_size
        self._sleep = sleep
        self._clock = clock

    async def recover(self, repository: RepositoryRef, corpus: Corpus) -> dict[TrainingItem, CorpusLine]:
        """Resolve every labeled item of the repository missing from the corpus."""
        skip_set = corpus.identifiers_for(repository.name)
        interest_set = await self.collect_interest_set(repository)
        candidates = self.candidates(skip_set, interest_set)

        logger.info(
            "%d items in %s carry a label of interest and are not in the corpus yet.",
            len(candidates), repository,
        )
        if candidates:
            logger.info("Downloading issues and pull requests [%s].", ", ".join(str(n) for n in candidates))

        recovered = await self.resolve(repository, skip_set, interest_set, candidates)
        logger.info("Downloaded %d more items for training.", len(recovered))
        return recovered

    async def collect_interest_set(self, repository: RepositoryRef) -> set[int]:
        """Numbers of all items in the repository carrying a label of interest."""
        numbers: set[int] = set()
        page = 1

        while True:
            outcome = await self._fetch(
                lambda: self.client.list_items_page(repository, page, self.page_size),
                f"item listing page {page} of {repository}",
            )
            if not isinstance(outcome, Found):
                logger.warning(
                    "Stopping item listing for %s at page %d: %s", repository, page, outcome.message
                )
                break

            for item in outcome.value:
                if any(self.label_filter(label) for label in item.labels):
                    numbers.add(item.number)

            if len(outcome.value) < self.page_size:
                break
            page += 1

        return numbers

    @staticmethod
    def candidates(skip_set: Iterable[int], interest_set: Iterable[int]) -> list[int]:
        """Interest numbers not already held, ascending."""
        return sorted(set(interest_set) - set(skip_set))

    async def resolve(
        self,
        repository: RepositoryRef,
        skip_set: set[int],
        interest_set: set[int],
        candidates: Iterable[int],
    ) -> dict[TrainingItem, CorpusLine]:
        """Fetch each remaining candidate and build its corpus rows."""
        entries: dict[TrainingItem, CorpusLine] = {}
        processed = 0

        for number in candidates:
            if number in skip_set or number not in interest_set:
                continue

            if processed % self.progress_interval == 0:
                logger.info("Downloading more missing items... now at #%d.", processed + 1)
            processed += 1

            item = await self._fetch_candidate(repository, number)
            if item is None:
                continue

            labels = [label for label in item.labels if self.label_filter(label)]
            if not labels:
                logger.debug("#%d has no label of interest after re-check; discarding.", number)
                continue

            if item.is_pull_request and not await self._fetch_files(repository, item):
                continue

            for label in labels:
                line = CorpusLine.build(
                    created_at=item.created_at,
                    repository_name=repository.name,
                    identifier=item.number,
                    label=label.name,
                    title=item.title,
                    body=item.body,
                    author=item.author,
                    is_pull_request=item.is_pull_request,
                    file_paths=item.file_paths,
                )
                if line.key in entries:
                    # One row per key: the first qualifying label is kept.
                    logger.debug("#%d: dropping extra label '%s'.", number, label.name)
                    continue
                entries[line.key] = line

        return entries

    async def _fetch_candidate(self, repository: RepositoryRef, number: int) -> Optional[RemoteItem]:
        """Point-fetch one item; None if it has to be skipped."""
        outcome = await self._fetch(lambda: self.client.get_item(repository, number), f"#{number}")
        if not self._usable(outcome, number):
            return None
        return outcome.value

    async def _fetch_files(self, repository: RepositoryRef, item: RemoteItem) -> bool:
        """Fill in the changed files of a pull request; False if it has to be skipped."""
        files = await self._fetch(
            lambda: self.client.get_pull_request_files(repository, item.number), f"files of #{item.number}"
        )
        if not self._usable(files, item.number):
            return False
        item.file_paths = list(files.value)
        return True

    def _usable(self, outcome: FetchOutcome, number: int) -> bool:
        if isinstance(outcome, Found):
            return True
        if isinstance(outcome, NotFound):
            logger.info("Issue #%d not found. Will skip and continue to next.", number)
        else:
            logger.warning("Downloading #%d failed (will skip and continue to next): %s", number, outcome.message)
        return False

    async def _fetch(self, fetch: Callable[[], Awaitable[FetchOutcome]], description: str) -> FetchOutcome:
        """Run one point fetch until it yields something other than a retryable outcome.

        Rate limits wait for the reset and retry without bound; empty
        responses are retried up to max_retries times.
        """
        transient_retries = 0
        while True:
            outcome = await fetch()

            if isinstance(outcome, RateLimited):
                await self._wait_for_reset(outcome, description)
                continue

            if isinstance(outcome, TransientError) and transient_retries < self.max_retries:
                transient_retries += 1
                logger.debug(
                    "Retrying %s after %s (%d/%d)", description, outcome.message, transient_retries, self.max_retries
                )
                await self._sleep(self.retry_delay)
                continue

            return outcome

    async def _wait_for_reset(self, outcome: RateLimited, description: str) -> None:
        resume_at = outcome.reset_at + self.rate_limit_buffer
        delay = (resume_at - self._clock()).total_seconds()

        logger.warning("The rate limit was exceeded while downloading %s. Error: '%s'", description, outcome.message)
        logger.warning("Throttling requests until %s... please wait!", resume_at.isoformat())

        if delay > 0:
            await self._sleep(delay)

