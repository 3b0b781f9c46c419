"""Exceptions raised while measuring commit history.

Every error aborts the enclosing batch: callers receive either a complete
ordered result list or exactly one of these.
"""


class MeasurementError(Exception):
    """Base exception for measurement failures."""

    pass


class ConfigurationError(MeasurementError):
    """Invalid or incomplete measurement configuration."""

    pass


class OracleError(MeasurementError):
    """Commit log could not be retrieved or parsed."""

    pass


class MaterializationError(MeasurementError):
    """Archiving or extracting a commit tree failed."""

    pass


class EmptyArchiveError(MaterializationError):
    """Extraction produced no files at all."""

    pass


class LookupError(MeasurementError):  # noqa: A001
    """Object-store query failed (missing path, unreadable blob, git failure)."""

    pass
