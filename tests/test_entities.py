"""Tests for core entities."""

import pytest

from label_corpus.core import ItemKind, RepositoryRef


def test_repository_ref_parse() -> None:
    """Test parsing an owner/name string."""
    ref = RepositoryRef.parse("octo/widgets")

    assert ref.owner == "octo"
    assert ref.name == "widgets"
    assert ref.full_name == "octo/widgets"
    assert str(ref) == "octo/widgets"


def test_repository_ref_parse_strips_whitespace() -> None:
    """Test surrounding whitespace is ignored."""
    assert RepositoryRef.parse("  Azure/azure-sdk-for-net \n") == RepositoryRef("Azure", "azure-sdk-for-net")


@pytest.mark.parametrize("value", ["", "octo", "octo/", "/widgets", "octo/widgets/extra", "a//b"])
def test_repository_ref_parse_malformed(value: str) -> None:
    """Test malformed identifiers fail at construction time."""
    with pytest.raises(ValueError):
        RepositoryRef.parse(value)


def test_repository_ref_validation() -> None:
    """Test direct construction is validated too."""
    with pytest.raises(ValueError, match="owner cannot be empty"):
        RepositoryRef(owner="", name="widgets")

    with pytest.raises(ValueError, match="name cannot be empty"):
        RepositoryRef(owner="octo", name="")


def test_repository_ref_is_immutable() -> None:
    """Test repository references cannot be changed."""
    ref = RepositoryRef.parse("octo/widgets")

    with pytest.raises(AttributeError):
        ref.name = "gadgets"  # type: ignore[misc]


def test_item_kind_plural() -> None:
    """Test display names of item kinds."""
    assert ItemKind.ISSUE.plural == "issues"
    assert ItemKind.PULL_REQUEST.plural == "pull requests"
