"""Environment configuration interface for git-measure.

All environment variable access lives here. Only entry points read it; the
measurement components receive an explicit MeasurementConfig instead.
"""

import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


class Environment:
    """Interface for accessing environment configuration."""

    @staticmethod
    def log_level(default: str = "INFO") -> str:
        """Get the logging level.

        Args:
            default: Level used when LOG_LEVEL is unset

        Returns:
            Log level name, upper-cased
        """
        return os.getenv("LOG_LEVEL", default).upper()

    @staticmethod
    def scratch_dir() -> Path:
        """Get the root directory for archives and extracted snapshots.

        Returns:
            Scratch root, defaults to <system tmp>/git-measure
        """
        default = Path(tempfile.gettempdir()) / "git-measure"
        return Path(os.getenv("MEASURE_SCRATCH_DIR", str(default)))

    @staticmethod
    def archive_format() -> str:
        """Get the archive format used to materialize trees.

        Returns:
            'tar' or 'zip', defaults to 'tar'
        """
        return os.getenv("MEASURE_ARCHIVE_FORMAT", "tar").lower()

    @staticmethod
    def subprocess_timeout() -> float:
        """Get the deadline for a single external process.

        Returns:
            Timeout in seconds, defaults to 120
        """
        return float(os.getenv("MEASURE_SUBPROCESS_TIMEOUT", "120"))

    @staticmethod
    def max_concurrency() -> int:
        """Get the maximum number of simultaneous external processes.

        Returns:
            Concurrency limit, defaults to 8
        """
        return int(os.getenv("MEASURE_MAX_CONCURRENCY", "8"))


# Singleton instance for convenient access
env = Environment()
