"""Object-store port used by the measurement strategies.

The strategies never spawn processes themselves. They talk to a GitBackend,
which answers four questions: which paths exist at a revision, whether a path
contains a phrase at a revision, and how to materialize (and later discard) a
revision's tree. GitCliBackend answers them with git/tar/unzip; tests plug in
in-memory fakes.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from common.logger import get_logger

from .commands import CommandError, CommandRunner
from .errors import LookupError
from .materializer import TreeMaterializer

logger = get_logger(__name__)


class GitBackend(ABC):
    """Abstract object-store interface."""

    @abstractmethod
    async def list_paths(self, revision: str) -> list[str]:
        """List every file path present in the tree of `revision`.

        Raises:
            LookupError: If the tree cannot be read
        """
        pass

    @abstractmethod
    async def contains_phrase(self, path: str, revision: str, phrase: str) -> bool:
        """Check whether the blob at `revision:path` contains `phrase` literally.

        Raises:
            LookupError: If the path does not exist at that revision or git fails
        """
        pass

    @abstractmethod
    async def materialize(self, revision: str, destination: Path) -> None:
        """Extract the tree of `revision` into `destination`.

        Raises:
            MaterializationError: If archiving or extraction fails
            EmptyArchiveError: If nothing was extracted
        """
        pass

    @abstractmethod
    async def discard(self, destination: Path) -> None:
        """Remove a materialized snapshot."""
        pass

    async def reset_scratch(self) -> None:
        """Prepare shared scratch space for a new batch."""
        return None


class GitCliBackend(GitBackend):
    """GitBackend backed by the git command line."""

    def __init__(self, repository_path: Path, runner: CommandRunner, materializer: TreeMaterializer):
        self.repository_path = repository_path
        self.runner = runner
        self.materializer = materializer

    async def list_paths(self, revision: str) -> list[str]:
        try:
            result = await self.runner.run(
                ["git", "ls-tree", "-r", "-z", "--full-tree", revision],
                cwd=self.repository_path,
            )
        except CommandError as e:
            raise LookupError(f"Cannot list tree of {revision}: {e}") from e

        paths = []
        # Entry format: "<mode> <type> <object>\t<path>"
        for entry in result.stdout.split(b"\0"):
            if not entry:
                continue
            meta, _, raw_path = entry.partition(b"\t")
            if meta.split(b" ")[1] != b"blob":
                # Submodules appear as commit entries and are not files
                continue
            paths.append(raw_path.decode("utf-8", errors="surrogateescape"))
        return sorted(paths)

    async def contains_phrase(self, path: str, revision: str, phrase: str) -> bool:
        content = await self.read_blob(path, revision)
        return phrase.encode("utf-8") in content

    async def read_blob(self, path: str, revision: str) -> bytes:
        """Return the raw bytes of `revision:path`."""
        try:
            result = await self.runner.run(
                ["git", "cat-file", "blob", f"{revision}:{path}"],
                cwd=self.repository_path,
            )
        except CommandError as e:
            raise LookupError(f"Cannot read {path} at {revision}: {e}") from e
        return result.stdout

    async def materialize(self, revision: str, destination: Path) -> None:
        await self.materializer.materialize(revision, destination)

    async def discard(self, destination: Path) -> None:
        await self.materializer.discard(destination)

    async def reset_scratch(self) -> None:
        await self.materializer.reset_archive_root()
