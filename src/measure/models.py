"""Data models for commit measurement."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# Metric name -> count, scoped to one commit
CommitMetrics = dict[str, int]


class ChangeStatus(str, Enum):
    """Per-file change codes reported by `git log --name-status`."""

    ADDED = "A"
    DELETED = "D"
    MODIFIED = "M"
    RENAMED = "R"
    COPIED = "C"
    TYPE_CHANGED = "T"

    @classmethod
    def parse(cls, code: str) -> "ChangeStatus":
        """Parse a raw status such as 'M', 'R100' or 'C075'.

        Raises:
            ValueError: If the leading letter is not a modelled status
        """
        if not code:
            raise ValueError("empty change status")
        return cls(code[0])


@dataclass(frozen=True)
class FileChange:
    """One file touched by a commit.

    For renames and copies `previous_path` is the source and `path` the
    destination; otherwise `previous_path` is None.
    """

    status: ChangeStatus
    path: str
    previous_path: str | None = None
    similarity: int | None = None

    @property
    def code(self) -> str:
        if self.similarity is None:
            return self.status.value
        return f"{self.status.value}{self.similarity:03d}"


@dataclass(frozen=True)
class CommitDetails:
    """A commit as returned by the commit-log oracle."""

    hash: str
    subject: str = ""
    author_name: str = ""
    author_date: str = ""
    author_email: str = ""
    changes: tuple[FileChange, ...] = ()

    @property
    def status(self) -> list[str]:
        """Status codes, aligned index for index with `files`."""
        return [change.code for change in self.changes]

    @property
    def files(self) -> list[str]:
        """Touched paths (destination path for renames and copies)."""
        return [change.path for change in self.changes]

    @property
    def is_modified_only(self) -> bool:
        return bool(self.changes) and all(
            change.status in (ChangeStatus.MODIFIED, ChangeStatus.TYPE_CHANGED)
            for change in self.changes
        )

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "subject": self.subject,
            "authorName": self.author_name,
            "authorDate": self.author_date,
            "authorEmail": self.author_email,
            "status": self.status,
            "files": self.files,
        }


@dataclass(frozen=True)
class ExtensionMetric:
    """Counts files whose path matches at least one glob."""

    name: str
    globs: tuple[str, ...]


@dataclass(frozen=True)
class ContentMetric:
    """Counts glob-matching files whose bytes contain `phrase`."""

    name: str
    globs: tuple[str, ...]
    phrase: str

    @property
    def needle(self) -> bytes:
        return self.phrase.encode("utf-8")


MetricDefinition = ExtensionMetric | ContentMetric


@dataclass(frozen=True)
class CommitWithMetrics:
    """A commit with its measured metrics; produced once, never mutated."""

    commit: CommitDetails
    metrics: CommitMetrics = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "hash": self.commit.hash,
            "subject": self.commit.subject,
            "authorDate": self.commit.author_date,
            "metrics": dict(self.metrics),
        }


@dataclass(frozen=True)
class CommitSnapshot:
    """A commit whose tree has been extracted to `clone_destination`."""

    commit: CommitDetails
    clone_destination: Path
