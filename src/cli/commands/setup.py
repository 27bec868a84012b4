"""``setup``: create a local cluster and install GrimoireLab on it."""

from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.cli.deployment.lifecycle import SetupOptions
from src.cli.shared.console import with_error_handling

from .shared import (
    ClusterOption,
    NamespaceOption,
    ReadyTimeoutOption,
    ReleaseOption,
    StrictOption,
    validate_timeout,
)


@with_error_handling
def setup(
    ctx: typer.Context,
    namespace: NamespaceOption = None,
    release: ReleaseOption = None,
    cluster: ClusterOption = None,
    timeout: Annotated[
        str | None,
        typer.Option(
            "--timeout",
            callback=validate_timeout,
            help="Helm operation timeout (e.g. 90s, 10m) [default: 10m]",
        ),
    ] = None,
    ready_timeout: ReadyTimeoutOption = None,
    strict: StrictOption = None,
    port_forward: Annotated[
        bool,
        typer.Option(
            "--port-forward/--no-port-forward",
            help="Forward Kibiter and Arthur to localhost after setup",
        ),
    ] = True,
) -> None:
    """Provision a local cluster and deploy the full GrimoireLab stack.

    Creates a kind (or minikube) cluster, installs the ingress controller,
    deploys the chart, waits for each tier, then keeps port-forwards open
    until Ctrl+C.

    Examples:
        grimoirelab-deploy setup
        grimoirelab-deploy setup --no-port-forward --strict
    """
    cli = get_cli_context(ctx)
    settings = cli.settings

    if timeout is None:
        timeout = (
            settings.helm_timeout
            if "helm_timeout" in settings.model_fields_set
            else cli.constants.SETUP_HELM_TIMEOUT
        )

    options = SetupOptions(
        namespace=namespace or settings.namespace,
        release=release or settings.release,
        cluster_name=cluster or settings.cluster_name,
        helm_timeout=timeout,
        ready_timeout=ready_timeout or settings.ready_timeout,
        poll_interval=settings.poll_interval,
        strict=settings.strict_readiness if strict is None else strict,
        port_forward=port_forward,
    )

    cli.console.print_header("GrimoireLab Local Setup")
    cli.build_deployer().setup(options)
