"""
Unified CLI Error Handling
==========================

Provides consistent error handling and exit codes across all CLI tools.
"""

import logging
import sys
import traceback
from enum import IntEnum
from typing import Iterable, NoReturn

import click

from usdb_algo.config import UsdbConfig


class ExitCode(IntEnum):
    """Standard exit codes for CLI tools."""
    SUCCESS = 0
    BUILD_ERROR = 1      # Compilation, translation or flowchart error
    INVALID_ARGS = 2     # Invalid arguments or missing files
    INTERNAL_ERROR = 3   # Unexpected internal error


def setup_logging(verbose: bool = False) -> UsdbConfig:
    """
    Configure the root logger for a CLI run.

    The level comes from USDB_LOG_LEVEL, or DEBUG with --verbose. Log
    records go to stderr so they never mix with generated output.

    Returns:
        The environment configuration, for the caller to reuse
    """
    config = UsdbConfig.from_env()
    logging.basicConfig(
        level=config.logging_level(verbose),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return config


def report_diagnostics(diagnostics: Iterable[object]) -> int:
    """
    Echo diagnostics to stderr, one per entry.

    Returns:
        Number of diagnostics written
    """
    count = 0
    for diagnostic in diagnostics:
        click.echo(str(diagnostic), err=True)
        count += 1
    return count


def handle_cli_exception(
    error: Exception,
    verbose: bool = False,
    error_type: str | None = None
) -> NoReturn:
    """
    Unified exception handler for all CLI tools.

    Formats the error message appropriately, optionally prints traceback
    in verbose mode, and exits with the correct exit code.

    Args:
        error: The exception that was raised
        verbose: If True, print full traceback for internal errors
        error_type: Optional prefix for the error message (e.g., "Translation")

    Raises:
        SystemExit: Always exits with an appropriate exit code
    """
    from usdb_algo.errors import CompilerError, UsdbError

    if isinstance(error, CompilerError):
        # Diagnostics carry their own "[ERROR] Line ..." prefix
        click.echo(str(error), err=True)
        sys.exit(ExitCode.BUILD_ERROR)

    elif isinstance(error, UsdbError):
        prefix = f"{error_type} error: " if error_type else "Error: "
        click.echo(f"{prefix}{error}", err=True)
        sys.exit(ExitCode.BUILD_ERROR)

    elif isinstance(error, click.BadParameter):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, (FileNotFoundError, PermissionError, UnicodeDecodeError)):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
