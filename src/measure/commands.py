"""Async wrapper around the short-lived external processes we depend on.

git, tar and unzip run as subprocesses awaited on the event loop, so sibling
commit computations keep going while one of them waits on a tool.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from common.logger import get_logger

logger = get_logger(__name__)


class CommandError(RuntimeError):
    """Raised when an external command is missing, fails, or times out."""

    def __init__(self, args: list[str], message: str, returncode: int | None = None):
        self.command = args
        self.returncode = returncode
        super().__init__(f"{' '.join(args)}: {message}")


@dataclass
class CommandResult:
    """Captured output of a finished command."""

    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def text(self) -> str:
        """stdout as str; undecodable bytes survive as surrogates, like os.fsdecode."""
        return self.stdout.decode("utf-8", errors="surrogateescape")


class CommandRunner:
    """Runs commands under a per-call deadline and a concurrency limit.

    Example:
        >>> runner = CommandRunner(timeout=30, max_concurrency=4)
        >>> result = await runner.run(["git", "rev-parse", "HEAD"], cwd=repo)
    """

    def __init__(self, timeout: float = 120.0, max_concurrency: int = 8):
        self.timeout = timeout
        self.max_concurrency = max_concurrency
        self._semaphore: asyncio.Semaphore | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def semaphore(self) -> asyncio.Semaphore:
        # A semaphore belongs to one event loop; rebuild it for a new one
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
            self._loop = loop
        return self._semaphore

    async def run(
        self,
        args: list[str],
        cwd: Path | str | None = None,
        check: bool = True,
    ) -> CommandResult:
        """Run a command and capture its output.

        Args:
            args: Program and arguments
            cwd: Working directory
            check: Raise CommandError on a non-zero exit code

        Returns:
            CommandResult with raw stdout/stderr bytes

        Raises:
            CommandError: Program missing, deadline exceeded, or (with check)
                non-zero exit
        """
        async with self.semaphore:
            logger.debug("Running %s", " ".join(args))
            try:
                process = await asyncio.create_subprocess_exec(
                    *args,
                    cwd=str(cwd) if cwd is not None else None,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except (FileNotFoundError, PermissionError) as e:
                raise CommandError(args, f"cannot execute: {e}") from e

            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), self.timeout)
            except asyncio.TimeoutError as e:
                await _kill(process)
                raise CommandError(args, f"timed out after {self.timeout:g}s") from e
            except BaseException:
                # Cancelled (e.g. a sibling task failed): the child must not outlive us
                await _kill(process)
                raise

        result = CommandResult(returncode=process.returncode, stdout=stdout, stderr=stderr)
        if check and result.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip() or "command failed"
            raise CommandError(args, message, returncode=result.returncode)
        return result


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill a still-running child and reap it."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()
