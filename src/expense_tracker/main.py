"""Entry point for running the expense tracker."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Mapping, Sequence

from rich.logging import RichHandler

from .app import run_app
from .storage import DEFAULT_DATA_FILE

DATA_FILE_ENV = "EXPENSE_TRACKER_DATA_FILE"
LOG_LEVEL_ENV = "EXPENSE_TRACKER_LOG_LEVEL"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_args(
    argv: Sequence[str] | None = None,
    env: Mapping[str, str] | None = None,
) -> argparse.Namespace:
    env = os.environ if env is None else env
    parser = argparse.ArgumentParser(description="Expense tracker desktop application")
    parser.add_argument(
        "--data-file",
        dest="data_file",
        default=env.get(DATA_FILE_ENV) or str(DEFAULT_DATA_FILE),
        help=(
            "Path to the JSON file used to persist expenses "
            f"(defaults to ${DATA_FILE_ENV}, then {DEFAULT_DATA_FILE})."
        ),
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=(env.get(LOG_LEVEL_ENV) or "WARNING").upper(),
        help=f"Logging verbosity (defaults to ${LOG_LEVEL_ENV}, then WARNING).",
    )
    args = parser.parse_args(argv)
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log level {args.log_level!r} from ${LOG_LEVEL_ENV}")
    return args


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(name)s - %(message)s",
        handlers=[
            RichHandler(
                rich_tracebacks=True,
                show_path=False,
                log_time_format="%Y-%m-%d %H:%M:%S",
            )
        ],
        force=True,
    )


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)
    logging.getLogger(__name__).info("Using data file %s", args.data_file)
    run_app(args.data_file)


if __name__ == "__main__":
    main()
