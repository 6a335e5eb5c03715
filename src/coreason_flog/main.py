# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flog

"""Command-line entry point that pipes stdin lines into a log stream."""

import argparse
import os
import sys
from pathlib import Path
from typing import TextIO

from loguru import logger
from pydantic import ValidationError

from coreason_flog.config import FlogConfig
from coreason_flog.exceptions import LoggerConstructionError
from coreason_flog.logger import Logger
from coreason_flog.models import Level, RotationConfig
from coreason_flog.utils.logger import setup_logging


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Append stdin lines to a rotating JSON log")
    parser.add_argument(
        "--directory",
        type=Path,
        default=FlogConfig.DEFAULT_DIRECTORY,
        help="Directory holding the log segments",
    )
    parser.add_argument(
        "--prefix",
        type=str,
        default=FlogConfig.DEFAULT_PREFIX,
        help="File name prefix of the log stream",
    )
    parser.add_argument(
        "--max-size-bytes",
        type=int,
        default=FlogConfig.DEFAULT_MAX_SIZE_BYTES,
        help="Rotate the active segment before it grows past this size",
    )
    parser.add_argument(
        "--max-age-days",
        type=int,
        default=FlogConfig.DEFAULT_MAX_AGE_DAYS,
        help=f"Delete finalized segments older than this (minimum {FlogConfig.MIN_MAX_AGE_DAYS})",
    )
    parser.add_argument(
        "--compress",
        action="store_true",
        help="Gzip segments once they are rotated",
    )
    parser.add_argument(
        "--level",
        type=str.upper,
        choices=[level.value for level in Level],
        default=Level.INFO.value,
        help="Level given to every line read from stdin",
    )
    return parser.parse_args(args)


def pipe_lines(log: Logger, stream: TextIO, level: Level) -> int:
    """
    Log each non-empty line of ``stream``.

    Args:
        log: Destination logger.
        stream: Text source, usually stdin.
        level: Level given to every line.

    Returns:
        Number of events logged.
    """
    emit = {
        Level.DEBUG: log.debug,
        Level.INFO: log.info,
        Level.ERROR: log.error,
        Level.FATAL: log.fatal,
    }[level]

    count = 0
    for line_number, line in enumerate(stream, start=1):
        text = line.rstrip("\r\n")
        if not text.strip():
            continue
        emit(text, line=line_number)
        count += 1
    return count


def main(args: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    parsed_args = parse_args(args)

    try:
        config = RotationConfig(
            max_size_bytes=parsed_args.max_size_bytes,
            max_age_days=parsed_args.max_age_days,
            compress_on_rotate=parsed_args.compress,
        )
        log = Logger(parsed_args.directory, parsed_args.prefix, config)
    except (ValidationError, LoggerConstructionError) as e:
        logger.error(f"Unable to start log stream: {e}")
        sys.exit(1)

    try:
        count = pipe_lines(log, sys.stdin, Level(parsed_args.level))
    finally:
        log.close()
    logger.info(f"Logged {count} line(s) to {parsed_args.directory}")


if __name__ == "__main__":  # pragma: no cover
    main()
