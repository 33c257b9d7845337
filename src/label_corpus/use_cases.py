"""Business logic use cases."""

import logging
import os
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Optional

from label_corpus.core import (
    BulkPaginator,
    Corpus,
    CorpusAssembler,
    CorpusLine,
    CountReconciler,
    GraphConnection,
    ItemClient,
    ItemKind,
    LabelNode,
    MissingItemResolver,
    RepositoryRef,
    accept_all_labels,
)

logger = logging.getLogger(__name__)

ITEM_KINDS = (ItemKind.ISSUE, ItemKind.PULL_REQUEST)


def validate_output_path(output_path: Path) -> None:
    """Check that the corpus file can be written."""
    directory = output_path.parent
    if not directory.is_dir() or not os.access(directory, os.W_OK):
        raise ValueError(f"Either the directory '{directory}' does not exist or cannot be written to.")


class CorpusDownloadService:
    """Download, reconcile and write the training corpus for a repository group."""

    def __init__(
        self,
        connection: GraphConnection,
        client: ItemClient,
        label_filter: Optional[Callable[[Any], bool]] = None,
        paginator: Optional[BulkPaginator] = None,
        resolver: Optional[MissingItemResolver] = None,
        assembler: Optional[CorpusAssembler] = None,
    ) -> None:
        self.connection = connection
        self.client = client
        self.label_filter = label_filter or accept_all_labels
        self.paginator = paginator or BulkPaginator(connection)
        self.resolver = resolver or MissingItemResolver(client, self.label_filter)
        self.assembler = assembler or CorpusAssembler()

    async def build(
        self,
        repositories: list[RepositoryRef],
        output_path: Path,
        seed_path: Optional[Path] = None,
    ) -> bool:
        """Download the corpus and write it to output_path.

        The file is written exactly once, whether or not the download
        completed.

        Returns:
            True if the download phase completed
        """
        if not repositories:
            raise ValueError("The repository group is required and should contain at least one item.")
        validate_output_path(output_path)

        corpus = self.assembler.load_seed(seed_path) if seed_path else Corpus()
        started = time.monotonic()

        try:
            completed = await self.download(repositories, corpus)
        finally:
            self.assembler.write(corpus, output_path)

        logger.info("Done downloading data for training items in %.2f seconds.", time.monotonic() - started)
        return completed

    async def download(self, repositories: Iterable[RepositoryRef], corpus: Corpus) -> bool:
        """Fill corpus from the bulk path, then recover missing items.

        Returns:
            False if an unexpected error stopped the download
        """
        repositories = list(repositories)
        reconciler = CountReconciler()

        try:
            for repository in repositories:
                await self._download_repository(repository, corpus, reconciler)

            if reconciler.has_missing:
                logger.info(
                    "There were %d missing issues and %d missing pull requests identified as missing.",
                    reconciler.missing_issues, reconciler.missing_pull_requests,
                )
                for repository in repositories:
                    recovered = await self.resolver.recover(repository, corpus)
                    corpus.merge(recovered)

            return True
        except Exception as e:
            logger.exception("Downloading issues and pull requests failed: %s", e)
            return False

    async def _download_repository(
        self,
        repository: RepositoryRef,
        corpus: Corpus,
        reconciler: CountReconciler,
    ) -> None:
        labels = await self._labels_of_interest(repository)
        logger.info("Found %d labels of interest in %s.", len(labels), repository)

        for kind in ITEM_KINDS:
            for label in labels:
                expected = label.pull_request_count if kind is ItemKind.PULL_REQUEST else label.issue_count
                logger.info("Downloading %s for '%s'.", kind.plural, label.name)

                result = await self.paginator.fetch_by_label(label.name, repository, kind, expected)
                added = 0
                for item in result.items:
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
                    if corpus.add(line.key, line):
                        added += 1

                logger.info(
                    "Downloaded %d %s with '%s' label (%d new).", len(result.items), kind.plural, label.name, added
                )
                reconciler.record(label.name, kind, expected, len(result.items))

    async def _labels_of_interest(self, repository: RepositoryRef) -> list[LabelNode]:
        labels = await self.connection.labels_with_counts(repository)
        return [label for label in labels if self.label_filter(label)]
