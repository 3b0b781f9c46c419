"""Commit-log oracle: ordered commits plus per-file change status.

The strategies only consume CommitDetails; where they come from is behind the
CommitOracle port. GitLogOracle reads them from `git log --name-status`.
"""

import re
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from common.constants import LOG_FIELD_SEPARATOR, LOG_FIELDS, LOG_RECORD_SEPARATOR
from common.logger import get_logger

from .commands import CommandError, CommandRunner
from .errors import OracleError
from .globs import expand_braces, parse_quoted_globs
from .models import ChangeStatus, CommitDetails, FileChange

logger = get_logger(__name__)


@dataclass
class CommitQuery:
    """Which slice of history to return.

    Attributes:
        repository_path: Repository to read
        since: Only commits more recent than this date
        until: Only commits older than this date
        max_count: Limit on the number of commits
        file_filter: Space-separated, single-quoted globs; only commits
            touching a matching path are returned
    """

    repository_path: Path
    since: str | None = None
    until: str | None = None
    max_count: int | None = None
    file_filter: str | None = None


class CommitOracle(ABC):
    """Source of ordered commit details."""

    @abstractmethod
    async def get_commits(self, query: CommitQuery) -> list[CommitDetails]:
        """Return commits latest first.

        Raises:
            OracleError: If the log cannot be retrieved or parsed
        """
        pass


class GitLogOracle(CommitOracle):
    """CommitOracle backed by `git log`.

    Walks the first-parent chain so every commit's change list is relative to
    the commit listed before it; merges are diffed against their first parent.
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def build_command(self, query: CommitQuery) -> list[str]:
        fmt = LOG_RECORD_SEPARATOR + LOG_FIELD_SEPARATOR.join(LOG_FIELDS)
        command = [
            "git",
            "-c",
            "core.quotePath=false",
            "log",
            "--first-parent",
            "-m",
            "-M",
            "-C",
            "--name-status",
            f"--format={fmt}",
        ]
        if query.since:
            command.append(f"--since={query.since}")
        if query.until:
            command.append(f"--until={query.until}")
        if query.max_count:
            command.append(f"--max-count={query.max_count}")
        command.append("--")
        if query.file_filter:
            # git pathspecs know *, ? and [..] but not {a,b}
            for glob in parse_quoted_globs(query.file_filter):
                command.extend(expand_braces(glob))
        return command

    async def get_commits(self, query: CommitQuery) -> list[CommitDetails]:
        command = self.build_command(query)
        try:
            result = await self.runner.run(command, cwd=query.repository_path)
        except CommandError as e:
            raise OracleError(f"Failed to read commit log of {query.repository_path}: {e}") from e

        commits = parse_log(result.text)
        logger.debug("Oracle returned %d commits for %s", len(commits), query.repository_path)
        return commits


def parse_log(output: str) -> list[CommitDetails]:
    """Parse `git log --name-status` output produced with our record format."""
    commits = []
    for record in output.split(LOG_RECORD_SEPARATOR):
        if not record.strip():
            continue
        header, _, body = record.partition("\n")
        fields = header.split(LOG_FIELD_SEPARATOR)
        if len(fields) != len(LOG_FIELDS):
            raise OracleError(f"Malformed commit header: {header!r}")
        commit_hash, subject, author_name, author_date, author_email = fields

        changes = tuple(
            parse_status_line(line, commit_hash) for line in body.splitlines() if line.strip()
        )
        _warn_ambiguous_renames(commit_hash, changes)
        commits.append(
            CommitDetails(
                hash=commit_hash,
                subject=subject,
                author_name=author_name,
                author_date=author_date,
                author_email=author_email,
                changes=changes,
            )
        )
    return commits


def parse_status_line(line: str, commit_hash: str = "") -> FileChange:
    """Parse one name-status line, e.g. 'M\\tsrc/a.ts' or 'R097\\told\\tnew'.

    Raises:
        OracleError: On unknown status codes or a wrong number of paths
    """
    code, *paths = line.split("\t")
    try:
        status = ChangeStatus.parse(code)
    except ValueError as e:
        raise OracleError(f"Unsupported change status {code!r} in commit {commit_hash}") from e

    paths = [unquote_path(path) for path in paths]
    similarity = int(code[1:]) if code[1:].isdigit() else None

    if status in (ChangeStatus.RENAMED, ChangeStatus.COPIED):
        if len(paths) != 2:
            raise OracleError(f"Expected source and destination in {line!r} ({commit_hash})")
        return FileChange(status=status, path=paths[1], previous_path=paths[0], similarity=similarity)

    if len(paths) != 1:
        raise OracleError(f"Expected exactly one path in {line!r} ({commit_hash})")
    return FileChange(status=status, path=paths[0])


_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13, '"': 34, "\\": 92}


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of unusual paths ("a\\tb", "\\303\\251")."""
    if not (len(path) >= 2 and path.startswith('"') and path.endswith('"')):
        return path
    raw = bytearray()
    body = path[1:-1]
    index = 0
    while index < len(body):
        char = body[index]
        if char != "\\":
            raw.extend(char.encode("utf-8", errors="surrogateescape"))
            index += 1
            continue
        octal = re.match(r"[0-7]{3}", body[index + 1 :])
        if octal:
            raw.append(int(octal.group(0), 8))
            index += 4
        else:
            escaped = body[index + 1 : index + 2]
            raw.append(_ESCAPES.get(escaped, ord(escaped or "\\")))
            index += 2
    return raw.decode("utf-8", errors="surrogateescape")


def _warn_ambiguous_renames(commit_hash: str, changes: tuple[FileChange, ...]) -> None:
    # A single source renamed to several destinations has no unique previous path
    sources = Counter(
        change.previous_path for change in changes if change.status == ChangeStatus.RENAMED
    )
    for source, count in sources.items():
        if count > 1:
            logger.warning(
                "Commit %s renames %s to %d destinations; rename pairing is ambiguous",
                commit_hash[:10],
                source,
                count,
            )
