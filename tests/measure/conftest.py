"""Shared fixtures for measure tests: in-memory fakes and throwaway git repos."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from measure.errors import LookupError, MaterializationError
from measure.git_backend import GitBackend
from measure.models import ChangeStatus, CommitDetails, FileChange
from measure.oracle import CommitOracle, CommitQuery


class FakeBackend(GitBackend):
    """In-memory object store.

    `trees` maps a commit hash to its files; `parents` maps a commit hash to
    its first parent, which is how `<hash>^` revisions are resolved.
    """

    def __init__(self, trees: dict[str, dict[str, bytes]], parents: dict[str, str] | None = None):
        self.trees = trees
        self.parents = parents or {}
        self.materialized: list[str] = []
        self.lookups: list[tuple[str, str, str]] = []
        self.failing_materializations: set[str] = set()
        self.failing_lookups: set[tuple[str, str]] = set()
        self.resets = 0

    def resolve(self, revision: str) -> dict[str, bytes]:
        if revision.endswith("^"):
            revision = self.parents[revision[:-1]]
        return self.trees[revision]

    async def list_paths(self, revision: str) -> list[str]:
        return sorted(self.resolve(revision))

    async def contains_phrase(self, path: str, revision: str, phrase: str) -> bool:
        self.lookups.append((path, revision, phrase))
        if (path, revision) in self.failing_lookups:
            raise LookupError(f"{revision}:{path} is unreadable")
        tree = self.resolve(revision)
        if path not in tree:
            raise LookupError(f"{path} does not exist at {revision}")
        return phrase.encode("utf-8") in tree[path]

    async def materialize(self, revision: str, destination: Path) -> None:
        if revision in self.failing_materializations:
            raise MaterializationError(f"archive of {revision} failed")
        self.materialized.append(revision)
        if destination.exists():
            shutil.rmtree(destination)
        destination.mkdir(parents=True)
        for path, content in self.trees[revision].items():
            target = destination / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

    async def discard(self, destination: Path) -> None:
        shutil.rmtree(destination, ignore_errors=True)

    async def reset_scratch(self) -> None:
        self.resets += 1


class FakeOracle(CommitOracle):
    """Returns a fixed commit list and remembers the queries it got."""

    def __init__(self, commits: list[CommitDetails]):
        self.commits = commits
        self.queries: list[CommitQuery] = []

    async def get_commits(self, query: CommitQuery) -> list[CommitDetails]:
        self.queries.append(query)
        return list(self.commits)


def change(code: str, path: str, previous_path: str | None = None) -> FileChange:
    """Shorthand: change("A", "a.ts"), change("R", "new.ts", "old.ts")."""
    return FileChange(status=ChangeStatus(code), path=path, previous_path=previous_path)


def commit(commit_hash: str, *changes: FileChange) -> CommitDetails:
    return CommitDetails(hash=commit_hash, subject=f"commit {commit_hash}", changes=tuple(changes))


class GitRepoForTests:
    """A real git repository driven through the git CLI."""

    def __init__(self, path: Path):
        self.path = path
        self.commit_count = 0
        path.mkdir(parents=True)
        self.git("init", "-q")
        self.git("config", "user.name", "Test User")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "commit.gpgsign", "false")

    def git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            check=True,
            capture_output=True,
            text=True,
        )
        return result.stdout.strip()

    def write(self, relative_path: str, content: str) -> None:
        target = self.path / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)

    def commit(
        self,
        create: list[str] = (),
        remove: list[str] = (),
        modify: list[str] = (),
        rename: list[tuple[str, str]] = (),
        write: dict[str, str] | None = None,
        message: str | None = None,
    ) -> str:
        """Apply file operations, commit them, and return the new hash."""
        self.commit_count += 1
        for relative_path in create:
            assert not (self.path / relative_path).exists(), relative_path
            self.write(relative_path, f"created {relative_path} in commit {self.commit_count}\n")
        for relative_path in modify:
            with open(self.path / relative_path, "a") as f:
                f.write(f"modified in commit {self.commit_count}\n")
        for source, destination in rename:
            (self.path / destination).parent.mkdir(parents=True, exist_ok=True)
            self.git("mv", source, destination)
        for relative_path in remove:
            self.git("rm", "-q", relative_path)
        for relative_path, content in (write or {}).items():
            self.write(relative_path, content)

        self.git("add", "-A")
        date = f"2024-01-01T00:{self.commit_count:02d}:00+00:00"
        subprocess.run(
            ["git", "commit", "-q", "--allow-empty", "-m", message or f"Commit #{self.commit_count}"],
            cwd=self.path,
            check=True,
            capture_output=True,
            env={
                **os.environ,
                "GIT_AUTHOR_DATE": date,
                "GIT_COMMITTER_DATE": date,
            },
        )
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path):
    """Empty git repository with user config."""
    return GitRepoForTests(tmp_path / "repo")


@pytest.fixture
def scratch_root(tmp_path):
    return tmp_path / "scratch"
