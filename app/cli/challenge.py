# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Challenge issuance command.

Commands:
    keypass challenge <address>   Render a fresh login challenge
"""

from typing import Optional

import typer

from app.cli.output import OutputFormat, output, output_error
from app.cli.utils import EXIT_VALIDATION_FAILURE
from app.keypass.challenge import issue_challenge
from app.keypass.exceptions import KeyPassError
from app.keypass.models import ChainFamily


def challenge_cmd(
    address: str = typer.Argument(..., help="Account address to issue the challenge for"),
    chain: Optional[ChainFamily] = typer.Option(
        None,
        "--chain",
        "-c",
        help="Chain type (inferred from the address if omitted)",
    ),
    message_only: bool = typer.Option(
        False,
        "--message-only",
        "-m",
        help="Print only the message text to sign",
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.json,
        "--format",
        "-f",
        help="Output format",
    ),
) -> None:
    """Issue a login challenge for an address.

    Examples:
        keypass challenge 0x742d35Cc6634C0532925a3b844Bc454e4438f44e
        keypass challenge <ss58-address> --chain polkadot -m
    """
    try:
        challenge = issue_challenge(address, chain.value if chain else None)
    except KeyPassError as exc:
        output_error(exc.code.value, exc.message, exit_code=EXIT_VALIDATION_FAILURE)
        return

    if message_only:
        typer.echo(challenge.message)
        return

    output(challenge.to_dict(), format, table_title="Challenge")
