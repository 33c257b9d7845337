"""Detection of items the bulk download missed."""

import logging

from label_corpus.core.entities import ItemKind

logger = logging.getLogger(__name__)


def missing(expected_total: int, retrieved_count: int) -> int:
    """Number of items expected but not retrieved (never negative)."""
    return max(0, expected_total - retrieved_count)


class CountReconciler:
    """Accumulate per-label shortfalls by item kind."""

    def __init__(self) -> None:
        self.shortfalls: dict[tuple[str, ItemKind], int] = {}
        self.missing_issues = 0
        self.missing_pull_requests = 0

    def record(self, label: str, kind: ItemKind, expected_total: int, retrieved_count: int) -> int:
        """Record one (label, kind) result and return its shortfall."""
        count = missing(expected_total, retrieved_count)
        self.shortfalls[(label, kind)] = self.shortfalls.get((label, kind), 0) + count

        if kind is ItemKind.PULL_REQUEST:
            self.missing_pull_requests += count
        else:
            self.missing_issues += count

        if count > 0:
            logger.info("Possibly missing %d %s with label '%s' to download later.", count, kind.plural, label)
        return count

    @property
    def total_missing(self) -> int:
        return self.missing_issues + self.missing_pull_requests

    @property
    def has_missing(self) -> bool:
        return self.total_missing > 0
