"""Training corpus: keys, rows, deduplication and serialization."""

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

HEADER = "CombinedID\tID\tLabel\tTitle\tDescription\tAuthor\tIsPR\tFilePaths"
DELETED_USER = "ghost"

_FILE_TIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)
# Every C0 control character and DEL becomes a space
_SANITIZE_TABLE = str.maketrans({**{code: " " for code in range(0x20)}, 0x7F: " ", '"': "`"})
_PATH_SEPARATOR = ";"


def sanitize(text: Optional[str]) -> str:
    """Replace characters that would break a tab-delimited row."""
    return (text or "").translate(_SANITIZE_TABLE)


def sanitize_path(path: str) -> str:
    """Sanitize a file path so it cannot split the FilePaths column."""
    return sanitize(path).replace(_PATH_SEPARATOR, ",")


def to_file_time(value: datetime) -> int:
    """Convert a datetime to 100-nanosecond ticks since 1601-01-01 UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value.astimezone(timezone.utc) - _FILE_TIME_EPOCH
    return (delta.days * 86_400 + delta.seconds) * 10_000_000 + delta.microseconds * 10


@dataclass(frozen=True, order=True)
class TrainingItem:
    """Corpus key. Ordering follows the field order."""

    created_at: int
    repository_name: str
    identifier: int


@dataclass(frozen=True)
class CorpusLine:
    """One serialized-ready corpus row."""

    created_at: int
    repository_name: str
    identifier: int
    label: str
    title: str
    body: str
    author: str
    is_pull_request: bool
    file_paths: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        *,
        created_at: datetime,
        repository_name: str,
        identifier: int,
        label: str,
        title: Optional[str],
        body: Optional[str],
        author: Optional[str],
        is_pull_request: bool,
        file_paths: Optional[list[str]] = None,
    ) -> "CorpusLine":
        """Create a row from raw item fields, sanitizing text."""
        return cls(
            created_at=to_file_time(created_at),
            repository_name=repository_name,
            identifier=identifier,
            label=sanitize(label),
            title=sanitize(title),
            body=sanitize(body),
            author=sanitize(author) or DELETED_USER,
            is_pull_request=is_pull_request,
            file_paths=tuple(sanitize_path(p) for p in file_paths or []) if is_pull_request else (),
        )

    @classmethod
    def parse(cls, row: str) -> "CorpusLine":
        """Parse a row previously produced by serialize()."""
        fields = row.rstrip("\r\n").split("\t")
        if len(fields) != 8:
            raise ValueError(f"Expected 8 tab-separated fields, got {len(fields)}")
        combined = fields[0].split(",")
        if len(combined) != 3:
            raise ValueError(f"Malformed combined id: {fields[0]!r}")
        ticks, repository_name, identifier = combined
        is_pull_request = fields[6] == "1"
        return cls(
            created_at=int(ticks),
            repository_name=repository_name,
            identifier=int(identifier),
            label=fields[2],
            title=fields[3],
            body=fields[4],
            author=fields[5] or DELETED_USER,
            is_pull_request=is_pull_request,
            file_paths=tuple(p for p in fields[7].split(_PATH_SEPARATOR) if p) if is_pull_request else (),
        )

    @property
    def key(self) -> TrainingItem:
        return TrainingItem(self.created_at, self.repository_name, self.identifier)

    @property
    def combined_id(self) -> str:
        return f"{self.created_at},{self.repository_name},{self.identifier}"

    def serialize(self) -> str:
        """Render the tab-delimited row (no trailing newline)."""
        return "\t".join([
            self.combined_id,
            str(self.identifier),
            self.label,
            self.title,
            self.body,
            self.author,
            "1" if self.is_pull_request else "0",
            _PATH_SEPARATOR.join(self.file_paths),
        ])


class Corpus:
    """In-progress corpus mapping with first-write-wins inserts."""

    def __init__(self) -> None:
        self._entries: dict[TrainingItem, CorpusLine] = {}

    def add(self, key: TrainingItem, line: CorpusLine) -> bool:
        """Insert unless the key is already present. Returns True if inserted."""
        if key in self._entries:
            return False
        self._entries[key] = line
        return True

    def merge(self, entries: Mapping[TrainingItem, CorpusLine]) -> int:
        """Insert every entry in iteration order; returns the number inserted."""
        return sum(1 for key, line in entries.items() if self.add(key, line))

    def keys_for(self, repository_name: str) -> list[TrainingItem]:
        """Keys belonging to one repository (case-insensitive)."""
        wanted = repository_name.lower()
        return [key for key in self._entries if key.repository_name.lower() == wanted]

    def identifiers_for(self, repository_name: str) -> set[int]:
        return {key.identifier for key in self.keys_for(repository_name)}

    def ordered(self) -> Iterator[CorpusLine]:
        """Rows ascending by (created_at, repository_name, identifier)."""
        for key in sorted(self._entries):
            yield self._entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __getitem__(self, key: TrainingItem) -> CorpusLine:
        return self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


class CorpusAssembler:
    """Merge corpus sources and write them as a tab-delimited file."""

    def assemble(self, *sources: Mapping[TrainingItem, CorpusLine]) -> list[str]:
        """Merge sources in the given order and return header plus sorted rows."""
        corpus = Corpus()
        for source in sources:
            corpus.merge(source)
        return self.render(corpus)

    def render(self, corpus: Corpus) -> list[str]:
        return [HEADER] + [line.serialize() for line in corpus.ordered()]

    def write(self, corpus: Corpus, output_path: Path) -> int:
        """Write the corpus to output_path, replacing any previous content.

        Returns:
            Number of data rows written
        """
        lines = self.render(corpus)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8", newline="\n") as f:
            for line in lines:
                f.write(line + "\n")
        logger.info("Wrote %d corpus rows to %s", len(lines) - 1, output_path)
        return len(lines) - 1

    def load_seed(self, seed_path: Path) -> Corpus:
        """Load an existing corpus file so a restart does not lose it."""
        corpus = Corpus()
        with open(seed_path, "r", encoding="utf-8") as f:
            for line_number, row in enumerate(f, 1):
                row = row.rstrip("\r\n")
                if not row or row == HEADER:
                    continue
                try:
                    line = CorpusLine.parse(row)
                except ValueError as e:
                    logger.warning("Skipping malformed seed row %d in %s: %s", line_number, seed_path, e)
                    continue
                corpus.add(line.key, line)
        logger.info("Loaded %d seed rows from %s", len(corpus), seed_path)
        return corpus
