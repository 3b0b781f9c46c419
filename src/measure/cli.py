#!/usr/bin/env python3
"""CLI interface for the measure module."""

import argparse
import asyncio
import json
from pathlib import Path

from common.logger import console, error, progress, setup_logging, success, warning

from .config import StrategyType, load_config
from .errors import MeasurementError
from .service import MeasurementService


def cmd_run(args):
    """Measure the configured commit window and print the results as JSON.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for measurement errors)
    """
    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        config = load_config(
            args.config,
            strategy=args.strategy,
            max_commits_count=args.max_commits,
            commits_since=args.since,
            commits_until=args.until,
        )
        progress(f"Measuring {config.repository_name} with the {config.strategy.value} strategy")
        results = asyncio.run(MeasurementService(config).run())
    except MeasurementError as e:
        error(f"{type(e).__name__}: {e}")
        return 1

    if not results:
        warning("No commits matched the configured window")
    console.print_json(json.dumps([result.to_dict() for result in results]))
    success(f"Measured {len(results)} commits with the {config.strategy.value} strategy")
    return 0


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Compute file-count metrics for every commit in a slice of git history"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Measure commits described by a JSON config")
    run_parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="JSON configuration (repositoryPath, trackByFileExtension, ...)",
    )
    run_parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in StrategyType],
        default=None,
        help="Override the configured strategy",
    )
    run_parser.add_argument("--max-commits", type=int, default=None, help="Limit commit count")
    run_parser.add_argument("--since", default=None, help="Only commits after this date")
    run_parser.add_argument("--until", default=None, help="Only commits before this date")
    run_parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    run_parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    run_parser.set_defaults(func=cmd_run)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    exit(main())
