"""Main CLI application module.

This module provides the main entry point for the GrimoireLab deployment
CLI.

Commands:
- setup: Provision a local cluster and deploy everything
- deploy: Deploy to an existing cluster
- cleanup: Tear a deployment down
- status: Inspect a deployment
"""

from typing import Annotated

import typer

from src.cli.shared.console import console
from src.cli.shared.logging import configure_logging

from .commands import cleanup, deploy, setup, status

# Create the main CLI application
app = typer.Typer(
    help="🛠️  GrimoireLab Deploy - Kubernetes lifecycle for GrimoireLab",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """GrimoireLab deployment lifecycle."""
    configure_logging(verbose)

    from .context import build_cli_context

    try:
        ctx.obj = build_cli_context()
    except ValueError as e:
        console.handle_error("Invalid deployment settings", str(e))


app.command()(setup)
app.command()(deploy)
app.command()(cleanup)
app.command()(status)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
