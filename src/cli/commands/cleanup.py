"""``cleanup``: remove a GrimoireLab deployment."""

from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.cli.deployment.lifecycle import TeardownPlan
from src.cli.shared.console import with_error_handling

from .shared import ClusterOption, NamespaceOption, ReleaseOption


@with_error_handling
def cleanup(
    ctx: typer.Context,
    namespace: NamespaceOption = None,
    release: ReleaseOption = None,
    cluster: ClusterOption = None,
    remove_cluster: Annotated[
        bool,
        typer.Option(
            "--remove-cluster",
            help="Delete the whole local cluster instead of individual resources",
        ),
    ] = False,
    remove_pvc: Annotated[
        bool,
        typer.Option(
            "--remove-pvc",
            help="Also delete persistent volume claims (data loss)",
        ),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation prompts"),
    ] = False,
) -> None:
    """Remove the GrimoireLab release and related resources.

    The namespace is only deleted once it is empty.

    Examples:
        grimoirelab-deploy cleanup
        grimoirelab-deploy cleanup --remove-pvc --force
        grimoirelab-deploy cleanup --remove-cluster
    """
    cli = get_cli_context(ctx)
    settings = cli.settings

    plan = TeardownPlan(
        remove_release=True,
        remove_persistent_data=remove_pvc,
        remove_cluster=remove_cluster,
        force=force,
    )

    cli.console.print_header("GrimoireLab Cleanup", style="red")
    report = cli.build_deployer().teardown(
        plan,
        namespace=namespace or settings.namespace,
        release=release or settings.release,
        cluster_name=cluster or settings.cluster_name,
    )
    if report.cancelled:
        cli.console.print("[dim]Nothing else was removed.[/dim]")
