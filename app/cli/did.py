# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""DID derivation and resolution commands.

Commands:
    keypass did create <address>     Derive the did:key for an address
    keypass did document <address>   Build the DID Document for an address
    keypass did resolve <did>        Resolve a did:key to its DID Document
"""

from typing import Optional

import typer

from app.cli.output import OutputFormat, output, output_error
from app.cli.utils import EXIT_VALIDATION_FAILURE
from app.keypass.chain import resolve_chain_family
from app.keypass.did import get_did_provider, resolve_did
from app.keypass.exceptions import KeyPassError
from app.keypass.models import ChainFamily

app = typer.Typer(
    name="did",
    help="Derive and resolve did:key identifiers.",
    no_args_is_help=True,
)

_CHAIN_HELP = "Chain type (inferred if omitted)"


def _family_for(address: str, chain: Optional[ChainFamily]) -> ChainFamily:
    return resolve_chain_family(address, chain.value if chain else None)


@app.command("create")
def create_cmd(
    address: str = typer.Argument(..., help="Account address"),
    chain: Optional[ChainFamily] = typer.Option(None, "--chain", "-c", help=_CHAIN_HELP),
    format: OutputFormat = typer.Option(OutputFormat.json, "--format", "-f", help="Output format"),
) -> None:
    """Derive the did:key identifier for an address.

    Examples:
        keypass did create 0x742d35Cc6634C0532925a3b844Bc454e4438f44e
    """
    try:
        family = _family_for(address, chain)
        did = get_did_provider(family).create_did(address)
    except KeyPassError as exc:
        output_error(exc.code.value, exc.message, exit_code=EXIT_VALIDATION_FAILURE)
        return

    output({"did": did, "address": address, "chainType": family.value}, format, table_title="DID")


@app.command("document")
def document_cmd(
    address: str = typer.Argument(..., help="Account address"),
    chain: Optional[ChainFamily] = typer.Option(None, "--chain", "-c", help=_CHAIN_HELP),
    format: OutputFormat = typer.Option(OutputFormat.pretty, "--format", "-f", help="Output format"),
) -> None:
    """Build the DID Document for an address."""
    try:
        family = _family_for(address, chain)
        document = get_did_provider(family).create_did_document(address)
    except KeyPassError as exc:
        output_error(exc.code.value, exc.message, exit_code=EXIT_VALIDATION_FAILURE)
        return

    output(document.to_wire(), format, table_title="DID Document")


@app.command("resolve")
def resolve_cmd(
    did: str = typer.Argument(..., help="did:key identifier"),
    chain: Optional[ChainFamily] = typer.Option(
        None,
        "--chain",
        "-c",
        help="Chain type (every chain is tried if omitted)",
    ),
    format: OutputFormat = typer.Option(OutputFormat.pretty, "--format", "-f", help="Output format"),
) -> None:
    """Resolve a did:key identifier to its DID Document.

    Examples:
        keypass did resolve did:key:zAAAAAAAAAAAAAAAAAAAAAAAAAAA --chain ethereum
    """
    try:
        _, document = resolve_did(did, chain)
    except KeyPassError as exc:
        output_error(exc.code.value, exc.message, exit_code=EXIT_VALIDATION_FAILURE)
        return

    output(document.to_wire(), format, table_title="DID Document")
