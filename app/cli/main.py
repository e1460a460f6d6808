# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""KeyPass CLI - Main entry point with subcommand registration."""

import typer

from app.config import SERVICE_VERSION

app = typer.Typer(
    name="keypass",
    help="KeyPass CLI - Issue and verify wallet login challenges, derive DIDs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"keypass version {SERVICE_VERSION}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """KeyPass CLI - Issue and verify wallet login challenges, derive DIDs.

    Commands that take a file also read from stdin when given '-'.
    Output is JSON by default for easy piping between commands.

    Examples:
        keypass challenge 5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY
        keypass verify request.json
        keypass did resolve did:key:z6Mk...
    """
    pass


def _register_subcommands() -> None:
    """Register all subcommand modules."""
    from app.cli import challenge, did, verify

    app.command("challenge")(challenge.challenge_cmd)
    app.command("verify")(verify.verify_cmd)
    app.add_typer(did.app, name="did", help="Derive and resolve did:key identifiers")


_register_subcommands()


if __name__ == "__main__":
    app()
