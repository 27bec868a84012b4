"""``deploy``: install or upgrade GrimoireLab on an existing cluster."""

from pathlib import Path
from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.cli.deployment.lifecycle import DeployOptions
from src.cli.shared.console import with_error_handling
from src.infra.constants import Environment

from .shared import (
    NamespaceOption,
    ReadyTimeoutOption,
    ReleaseOption,
    StrictOption,
    validate_timeout,
)


@with_error_handling
def deploy(
    ctx: typer.Context,
    environment: Annotated[
        Environment,
        typer.Option(
            "--environment",
            "-e",
            case_sensitive=False,
            help="Target environment; selects values-<environment>.yaml",
        ),
    ] = Environment.LOCAL,
    values: Annotated[
        Path | None,
        typer.Option(
            "--values",
            "-f",
            help="Values file to use instead of the environment overlay",
        ),
    ] = None,
    namespace: NamespaceOption = None,
    release: ReleaseOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Simulate the install; skip readiness waits"),
    ] = False,
    upgrade: Annotated[
        bool,
        typer.Option("--upgrade", help="Upgrade the release in place"),
    ] = False,
    timeout: Annotated[
        str | None,
        typer.Option(
            "--timeout",
            callback=validate_timeout,
            help="Helm operation timeout (e.g. 90s, 15m) [default: 15m]",
        ),
    ] = None,
    ready_timeout: ReadyTimeoutOption = None,
    strict: StrictOption = None,
) -> None:
    """Deploy GrimoireLab to the cluster of the current kubectl context.

    Existing releases are upgraded in place, so running the command twice
    is safe.

    Examples:
        grimoirelab-deploy deploy --environment staging
        grimoirelab-deploy deploy --values my-values.yaml --dry-run
    """
    cli = get_cli_context(ctx)
    settings = cli.settings

    options = DeployOptions(
        environment=environment,
        values_file=values.resolve() if values is not None else None,
        namespace=namespace or settings.namespace,
        release=release or settings.release,
        dry_run=dry_run,
        upgrade=upgrade,
        helm_timeout=timeout or settings.helm_timeout,
        ready_timeout=ready_timeout or settings.ready_timeout,
        poll_interval=settings.poll_interval,
        strict=settings.strict_readiness if strict is None else strict,
    )

    cli.console.print_header(f"GrimoireLab Deploy ({environment.value})")
    cli.build_deployer().deploy(options)
