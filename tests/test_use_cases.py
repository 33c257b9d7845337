"""Tests for use cases."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import AsyncMock

import pytest

from label_corpus.core import (
    HEADER,
    BulkPaginator,
    Corpus,
    CorpusAssembler,
    Found,
    InterestFilter,
    ItemKind,
    ItemPage,
    LabelNode,
    MissingItemResolver,
    NotFound,
    RemoteItem,
    RepositoryRef,
    RestLabel,
)
from label_corpus.use_cases import CorpusDownloadService, validate_output_path

REPO = RepositoryRef.parse("octo/widgets")
T0 = datetime(2022, 6, 1, tzinfo=timezone.utc)
BUG = LabelNode(name="bug", color="e99695", issue_count=3, pull_request_count=0)


def item(number: int, labels: list[RestLabel] | None = None) -> RemoteItem:
    """Create a remote issue."""
    return RemoteItem(
        number=number,
        title=f"Issue {number}",
        body="Something\tbroke",
        author="octocat",
        created_at=T0 + timedelta(hours=number),
        labels=labels or [],
    )


def page(numbers: list[int], total: int, cursor: str | None = None) -> ItemPage:
    return ItemPage(
        items=[item(n) for n in numbers],
        total_count=total,
        has_next_page=cursor is not None,
        end_cursor=cursor,
    )


def make_service(connection: AsyncMock, client: AsyncMock) -> CorpusDownloadService:
    label_filter = InterestFilter()
    sleep = AsyncMock()
    return CorpusDownloadService(
        connection=connection,
        client=client,
        label_filter=label_filter,
        paginator=BulkPaginator(connection, sleep=sleep),
        resolver=MissingItemResolver(client, label_filter, sleep=sleep),
    )


def pages_for(issue_pages: list) -> Callable:
    """Serve issue pages in order and empty pages for pull requests."""
    remaining = list(issue_pages)

    async def fetch(repository, label, kind, after, first):
        if kind is ItemKind.PULL_REQUEST:
            return ItemPage(items=[], total_count=0, has_next_page=False, end_cursor=None)
        return remaining.pop(0)

    return fetch


@pytest.mark.asyncio
async def test_complete_download_skips_recovery() -> None:
    """Test a bulk download matching the expected count needs no recovery."""
    connection = AsyncMock()
    connection.labels_with_counts.return_value = [BUG, LabelNode(name="docs", color="00ff00", issue_count=9)]
    connection.fetch_items_page.side_effect = pages_for([page([1, 2], 3, "abc"), page([3], 3)])
    client = AsyncMock()
    service = make_service(connection, client)
    corpus = Corpus()

    completed = await service.download([REPO], corpus)

    assert completed
    assert len(corpus) == 3
    assert corpus.identifiers_for("widgets") == {1, 2, 3}
    issue_calls = [c for c in connection.fetch_items_page.call_args_list if c.args[2] is ItemKind.ISSUE]
    assert [c.args[3] for c in issue_calls] == [None, "abc"]
    assert all(c.args[1] == "bug" for c in connection.fetch_items_page.call_args_list)
    client.list_items_page.assert_not_called()
    client.get_item.assert_not_called()


@pytest.mark.asyncio
async def test_missing_items_are_recovered() -> None:
    """Test a shortfall triggers recovery of the missing numbers."""
    service_label = RestLabel(name="bug", color="e99695")
    connection = AsyncMock()
    connection.labels_with_counts.return_value = [
        LabelNode(name="bug", color="e99695", issue_count=5, pull_request_count=0),
    ]
    connection.fetch_items_page.side_effect = pages_for([page([10, 11, 12], 3)])
    client = AsyncMock()
    client.list_items_page.return_value = Found([item(n, [service_label]) for n in (10, 11, 12, 13, 14)])
    client.get_item.side_effect = [Found(item(13, [service_label])), NotFound()]
    service = make_service(connection, client)
    corpus = Corpus()

    completed = await service.download([REPO], corpus)

    assert completed
    assert [call.args[1] for call in client.get_item.await_args_list] == [13, 14]
    assert len(corpus) == 4
    assert corpus.identifiers_for("widgets") == {10, 11, 12, 13}


@pytest.mark.asyncio
async def test_first_label_wins_across_labels() -> None:
    """Test an item under two labels keeps the first label downloaded."""
    connection = AsyncMock()
    connection.labels_with_counts.return_value = [
        LabelNode(name="Storage", color="e99695", issue_count=1),
        LabelNode(name="bug", color="ffeb77", issue_count=1),
    ]
    connection.fetch_items_page.side_effect = pages_for([page([7], 1), page([7], 1)])
    service = make_service(connection, AsyncMock())
    corpus = Corpus()

    await service.download([REPO], corpus)

    assert len(corpus) == 1
    assert next(corpus.ordered()).label == "Storage"


@pytest.mark.asyncio
async def test_without_label_filter_every_label_is_downloaded() -> None:
    """Test a service built without a filter keeps every label."""
    connection = AsyncMock()
    connection.labels_with_counts.return_value = [
        LabelNode(name="bug", color="e99695", issue_count=1),
        LabelNode(name="docs", color="00ff00", issue_count=1),
    ]
    connection.fetch_items_page.side_effect = pages_for([page([1], 1), page([2], 1)])
    service = CorpusDownloadService(
        connection=connection,
        client=AsyncMock(),
        paginator=BulkPaginator(connection, sleep=AsyncMock()),
    )
    corpus = Corpus()

    assert await service.download([REPO], corpus)

    assert [line.label for line in corpus.ordered()] == ["bug", "docs"]


@pytest.mark.asyncio
async def test_unexpected_error_reports_failure() -> None:
    """Test a top-level error turns into a failed download."""
    connection = AsyncMock()
    connection.labels_with_counts.side_effect = RuntimeError("Bad credentials")
    service = make_service(connection, AsyncMock())

    assert await service.download([REPO], Corpus()) is False


@pytest.mark.asyncio
async def test_build_writes_partial_corpus_on_failure() -> None:
    """Test the corpus is written even when the download fails midway."""
    other = RepositoryRef.parse("octo/gadgets")
    connection = AsyncMock()
    connection.labels_with_counts.side_effect = [[BUG], RuntimeError("boom")]
    connection.fetch_items_page.side_effect = pages_for([page([1, 2, 3], 3)])
    service = make_service(connection, AsyncMock())

    with TemporaryDirectory() as tmpdir:
        output = Path(tmpdir) / "octo-widgets-input.tsv"

        completed = await service.build([REPO, other], output)

        lines = output.read_text(encoding="utf-8").splitlines()

    assert completed is False
    assert lines[0] == HEADER
    assert len(lines) == 4
    assert lines[1].split("\t")[3:5] == ["Issue 1", "Something broke"]


@pytest.mark.asyncio
async def test_build_flushes_before_propagating() -> None:
    """Test an error escaping download still leaves the corpus on disk."""
    connection = AsyncMock()
    service = make_service(connection, AsyncMock())
    service.download = AsyncMock(side_effect=RuntimeError("interrupted"))

    with TemporaryDirectory() as tmpdir:
        output = Path(tmpdir) / "corpus.tsv"

        with pytest.raises(RuntimeError, match="interrupted"):
            await service.build([REPO], output)

        assert output.read_text(encoding="utf-8") == HEADER + "\n"


@pytest.mark.asyncio
async def test_build_with_seed() -> None:
    """Test a seed corpus is kept and merged with the new download."""
    connection = AsyncMock()
    connection.labels_with_counts.return_value = [BUG]
    connection.fetch_items_page.side_effect = pages_for([page([1, 2, 3], 3)])
    service = make_service(connection, AsyncMock())

    with TemporaryDirectory() as tmpdir:
        seed = Path(tmpdir) / "seed.tsv"
        output = Path(tmpdir) / "corpus.tsv"
        first_run = Corpus()
        await service.download([REPO], first_run)
        CorpusAssembler().write(first_run, seed)

        connection.fetch_items_page.side_effect = pages_for([page([3, 4], 4)])
        connection.labels_with_counts.return_value = [
            LabelNode(name="bug", color="e99695", issue_count=2),
        ]

        assert await service.build([REPO], output, seed_path=seed)

        rows = output.read_text(encoding="utf-8").splitlines()[1:]

    assert [row.split("\t")[1] for row in rows] == ["1", "2", "3", "4"]


@pytest.mark.asyncio
async def test_build_requires_repositories() -> None:
    """Test an empty repository group is rejected."""
    service = make_service(AsyncMock(), AsyncMock())

    with TemporaryDirectory() as tmpdir:
        with pytest.raises(ValueError, match="repository group"):
            await service.build([], Path(tmpdir) / "corpus.tsv")


def test_validate_output_path() -> None:
    """Test the output directory must exist."""
    with TemporaryDirectory() as tmpdir:
        validate_output_path(Path(tmpdir) / "corpus.tsv")

        with pytest.raises(ValueError, match="does not exist"):
            validate_output_path(Path(tmpdir) / "missing" / "corpus.tsv")
