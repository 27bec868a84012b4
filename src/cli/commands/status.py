"""``status``: show what is deployed."""

import typer

from src.cli.context import get_cli_context
from src.cli.shared.console import with_error_handling

from .shared import NamespaceOption, ReleaseOption


@with_error_handling
def status(
    ctx: typer.Context,
    namespace: NamespaceOption = None,
    release: ReleaseOption = None,
) -> None:
    """Show the Helm release, pods, services and ingress of a deployment."""
    cli = get_cli_context(ctx)
    cli.build_deployer().show_status(
        namespace or cli.settings.namespace,
        release or cli.settings.release,
    )
