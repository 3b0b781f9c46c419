"""Export a commit's tree to a scratch directory (archive + extract)."""

import asyncio
import os
import shutil
from pathlib import Path

from common.constants import ARCHIVE_FORMATS, EXACT_TREE_ATTRIBUTES, GIT_DIRNAME
from common.logger import get_logger

from .commands import CommandError, CommandRunner
from .errors import ConfigurationError, EmptyArchiveError, MaterializationError

logger = get_logger(__name__)


def empty_dir(directory: Path) -> None:
    """Make sure `directory` exists and contains nothing."""
    if directory.exists():
        shutil.rmtree(directory)
    directory.mkdir(parents=True, exist_ok=True)


def list_files(root: Path) -> list[str]:
    """List regular files and symlinks under `root` as relative POSIX paths.

    Symlinked directories are reported as files, the way git tracks them.
    """
    files = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        for dirname in list(dirnames):
            if (current / dirname).is_symlink():
                filenames.append(dirname)
                dirnames.remove(dirname)
        for filename in filenames:
            files.append((current / filename).relative_to(root).as_posix())
    return sorted(files)


def read_snapshot_file(root: Path, relative_path: str) -> bytes:
    """Read a file's blob content from an extracted snapshot.

    A symlink's blob is its target path, not the target's content.
    """
    full_path = root / relative_path
    if full_path.is_symlink():
        return os.fsencode(os.readlink(full_path))
    return full_path.read_bytes()


class TreeMaterializer:
    """Materializes exact tree objects of a repository into scratch directories.

    Each commit gets its own hash-keyed archive file and destination, so
    concurrent materializations of different commits never touch the same
    paths. Working-copy state is never read.

    `git archive` honours the archived tree's .gitattributes (export-ignore,
    export-subst, eol and filter conversion). To get the blobs exactly as
    stored, archives are made through a scratch bare git dir that borrows the
    repository's objects as an alternate and overrides every attribute in its
    info/attributes.
    """

    def __init__(
        self,
        repository_path: Path,
        archives_root: Path,
        runner: CommandRunner,
        archive_format: str = "tar",
    ):
        if archive_format not in ARCHIVE_FORMATS:
            raise ConfigurationError(
                f"Unsupported archive format: {archive_format}. "
                f"Must be one of: {', '.join(sorted(ARCHIVE_FORMATS))}"
            )
        self.repository_path = repository_path
        self.archives_root = archives_root
        self.git_dir = archives_root.parent / GIT_DIRNAME
        self.runner = runner
        self.archive_format = archive_format
        self._git_dir_ready: asyncio.Future | None = None
        self._git_dir_loop: asyncio.AbstractEventLoop | None = None

    async def reset_archive_root(self) -> None:
        """Clear the shared archive directory; done once per batch."""
        await asyncio.to_thread(empty_dir, self.archives_root)

    async def prepare_git_dir(self) -> None:
        """Create the attribute-neutral git dir once per event loop.

        Concurrent callers wait for the same preparation; a failed one is
        retried by the next caller.
        """
        loop = asyncio.get_running_loop()
        ready = self._git_dir_ready
        failed = ready is not None and ready.done() and (ready.cancelled() or ready.exception())
        if ready is None or failed or self._git_dir_loop is not loop:
            self._git_dir_ready = asyncio.ensure_future(self._create_git_dir())
            self._git_dir_loop = loop
        await asyncio.shield(self._git_dir_ready)

    async def materialize(self, commit_hash: str, destination: Path) -> None:
        """Populate `destination` with the tree of `commit_hash`.

        Raises:
            MaterializationError: archive or extract tool failed
            EmptyArchiveError: extraction produced no files
        """
        archive_path = self.archives_root / f"{commit_hash}.{self.archive_format}"
        try:
            await self.prepare_git_dir()
            await asyncio.to_thread(empty_dir, destination)
            await asyncio.to_thread(self.archives_root.mkdir, parents=True, exist_ok=True)
            await self.runner.run(self._archive_command(commit_hash, archive_path), cwd=self.repository_path)

            # A failed earlier attempt must never mix with this extraction
            await asyncio.to_thread(empty_dir, destination)
            await self.runner.run(self._extract_command(archive_path, destination), cwd=self.archives_root)
        except (CommandError, OSError) as e:
            await asyncio.to_thread(shutil.rmtree, destination, True)
            raise MaterializationError(f"Failed to materialize commit {commit_hash}: {e}") from e
        except asyncio.CancelledError:
            shutil.rmtree(destination, ignore_errors=True)
            raise
        finally:
            archive_path.unlink(missing_ok=True)

        if not any(destination.iterdir()):
            raise EmptyArchiveError(
                f"Commit {commit_hash} extracted to an empty directory {destination}; "
                "the archive step probably malfunctioned"
            )
        logger.debug("Materialized %s into %s", commit_hash[:10], destination)

    async def discard(self, destination: Path) -> None:
        """Remove a snapshot directory once it has been measured."""
        await asyncio.to_thread(shutil.rmtree, destination, True)

    async def _create_git_dir(self) -> None:
        result = await self.runner.run(
            ["git", "rev-parse", "--git-common-dir", "--show-object-format"],
            cwd=self.repository_path,
        )
        common_dir, object_format = result.text.splitlines()
        objects_dir = (self.repository_path / common_dir / "objects").resolve()

        await self.runner.run(
            ["git", "init", "--bare", "-q", f"--object-format={object_format}", str(self.git_dir)]
        )
        await asyncio.to_thread(self._write_git_dir_files, objects_dir)
        logger.debug("Prepared %s borrowing objects from %s", self.git_dir, objects_dir)

    def _write_git_dir_files(self, objects_dir: Path) -> None:
        alternates = self.git_dir / "objects" / "info" / "alternates"
        alternates.parent.mkdir(parents=True, exist_ok=True)
        alternates.write_text(f"{objects_dir}\n")

        attributes = self.git_dir / "info" / "attributes"
        attributes.parent.mkdir(parents=True, exist_ok=True)
        attributes.write_text(EXACT_TREE_ATTRIBUTES)

    def _archive_command(self, commit_hash: str, archive_path: Path) -> list[str]:
        command = ["git", f"--git-dir={self.git_dir}", "archive", f"--format={self.archive_format}"]
        if self.archive_format == "zip":
            # store only
            command.append("-0")
        return command + ["-o", str(archive_path), commit_hash]

    def _extract_command(self, archive_path: Path, destination: Path) -> list[str]:
        if self.archive_format == "zip":
            return ["unzip", "-q", "-d", str(destination), str(archive_path)]
        return ["tar", "-xf", str(archive_path), "-C", str(destination)]
