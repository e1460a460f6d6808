# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Signed challenge verification command.

Commands:
    keypass verify <request>   Verify a signed challenge request
"""

from typing import Optional

import typer

from app.cli.output import OutputFormat, output, output_error
from app.cli.utils import EXIT_VALIDATION_FAILURE, read_json_input
from app.keypass.models import ChainFamily
from app.keypass.verify import VerificationService


def verify_cmd(
    source: str = typer.Argument(
        ...,
        help="Request JSON file, JSON string, or '-' for stdin",
    ),
    chain: Optional[ChainFamily] = typer.Option(
        None,
        "--chain",
        "-c",
        help="Pin verification to one chain type (ignores chainType in the request)",
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.json,
        "--format",
        "-f",
        help="Output format",
    ),
) -> None:
    """Verify a signed login challenge.

    The request is a JSON object with message, signature, address and an
    optional chainType. On success the response (including the DID) is
    written to stdout; on failure the error is written to stderr and the
    exit code is 1.

    Examples:
        keypass verify request.json
        cat request.json | keypass verify -
    """
    body = read_json_input(source)

    response = VerificationService(family=chain).verify_signature(body)
    if not response.is_success:
        output_error(response.code, response.message, exit_code=EXIT_VALIDATION_FAILURE)
        return

    output(response.to_wire(), format, table_title="Verification")
