# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Shared utilities for the KeyPass CLI.

- Reading input from stdin, files, or arguments
- Exit codes
"""

import json
import sys
from pathlib import Path
from typing import Any

import typer

from app.cli.output import output_error
from app.keypass.models import ErrorCode

# Exit codes
EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILURE = 1
EXIT_PARSE_ERROR = 2
EXIT_IO_ERROR = 3


def _is_file(source: str) -> bool:
    """True if *source* names an existing file; literals may be too long to be paths."""
    try:
        return Path(source).is_file()
    except (OSError, ValueError):
        return False


def read_input(source: str, encoding: str = "utf-8") -> str:
    """Read input from stdin, file, or argument.

    Args:
        source: "-" for stdin, a file path, or a literal value

    Raises:
        typer.Exit: On I/O errors with EXIT_IO_ERROR
    """
    try:
        if source == "-":
            return sys.stdin.read()

        if _is_file(source):
            return Path(source).read_text(encoding=encoding)

        return source

    except (OSError, UnicodeDecodeError) as e:
        typer.echo(f"Error reading input: {e}", err=True)
        raise typer.Exit(EXIT_IO_ERROR) from e


def read_json_input(source: str) -> Any:
    """Read and decode JSON from stdin, file, or argument.

    Raises:
        typer.Exit: On I/O errors (EXIT_IO_ERROR) or invalid JSON
            (EXIT_PARSE_ERROR)
    """
    content = read_input(source)

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        output_error(
            ErrorCode.INVALID_REQUEST.value,
            f"Invalid JSON: {e}",
            exit_code=EXIT_PARSE_ERROR,
        )
