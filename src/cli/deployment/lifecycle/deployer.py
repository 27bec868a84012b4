"""GrimoireLab deployer.

This module provides the GrimoireLabDeployer class which wires the
lifecycle components together for each CLI command:
- setup: provision a local cluster, install everything, port-forward
- deploy: install or upgrade the chart on an existing cluster
- teardown: remove sessions, release, data, namespace or cluster
- show_status: release, pods, services and ingress for a release
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from loguru import logger
from rich.table import Table

from src.infra.constants import DeploymentConstants, DeploymentPaths
from src.infra.k8s.port_forward import PortForwardError, SessionManager
from src.utils.console_like import ConsoleLike

from ..base import BaseDeployer
from ..shell_commands import ShellCommands
from .errors import DeploymentError, StageExecutionError
from .pipelines import AccessEndpoints, DeployOptions, PipelineBuilder, SetupOptions
from .preflight import PreflightChecker, Requirements
from .readiness import ReadinessProber
from .sequencer import PipelineResult, StageSequencer
from .teardown import (
    ConfirmCallback,
    StepStatus,
    TeardownCoordinator,
    TeardownPlan,
    TeardownReport,
)


def _decline(step: Any, message: str) -> bool:
    return False


class GrimoireLabDeployer(BaseDeployer):
    """Deployer for GrimoireLab on Kubernetes.

    Attributes:
        constants: Deployment configuration constants
        paths: Deployment path resolver
        commands: Shell command executor
        sessions: Port-forward session registry
        prober: Readiness prober used between stages
    """

    def __init__(
        self,
        console: ConsoleLike,
        project_root: Path,
        *,
        commands: ShellCommands | None = None,
        paths: DeploymentPaths | None = None,
        constants: DeploymentConstants | None = None,
        sessions: SessionManager | None = None,
        prober: ReadinessProber | None = None,
        preflight: PreflightChecker | None = None,
        confirm: ConfirmCallback | None = None,
        cancel: threading.Event | None = None,
    ):
        """Initialize the deployer.

        Args:
            console: Console for operator output
            project_root: Path to the project root directory
            commands: Shell command executor (built from project_root if omitted)
            paths: Chart and values file resolver
            constants: Deployment constants
            sessions: Port-forward session manager
            prober: Readiness prober
            preflight: Prerequisite checker
            confirm: Callback asked before destructive teardown steps;
                declines everything when omitted
            cancel: Event that stops the pipeline when set; the interrupt
                guard sets it on SIGINT/SIGTERM
        """
        super().__init__(console, project_root)

        self.constants = constants or DeploymentConstants()
        self.paths = paths or DeploymentPaths(project_root)
        self.commands = commands or ShellCommands(project_root)
        self.sessions = sessions or SessionManager(console)
        self.prober = prober or ReadinessProber(self.commands.kubectl)
        self.preflight = preflight or PreflightChecker(self.commands)
        self.confirm = confirm or _decline
        self.cancel = cancel if cancel is not None else threading.Event()

    def _builder(self) -> PipelineBuilder:
        return PipelineBuilder(self.commands, self.paths, self.console, self.constants)

    def _sequencer(self) -> StageSequencer:
        return StageSequencer(self.prober, self.console, cancel=self.cancel)

    # =========================================================================
    # Commands
    # =========================================================================

    def setup(self, options: SetupOptions, *, block: bool = True) -> PipelineResult:
        """Bring up a local cluster with the full stack.

        After a successful run, port-forwards are opened (unless disabled)
        and, with ``block=True``, kept up until the operator interrupts.

        Raises:
            DeploymentError: If a prerequisite is missing or a stage fails
        """
        self.preflight.check(Requirements(needs_provisioner=True))
        builder = self._builder()

        with self.sessions.interrupt_guard(self.cancel):
            result = self._sequencer().run(builder.setup_stages(options))
            self._raise_on_failure(result)
            self._report_success(result, "GrimoireLab setup complete")

            if not options.port_forward:
                self._print_access_hints(builder.endpoints, options.namespace, options.release)
                return result

            self._open_sessions(options.namespace, options.release)
            if block and len(self.sessions):
                self.console.print("\n[dim]Press Ctrl+C to stop port forwarding.[/dim]")
                try:
                    self.sessions.wait()
                except KeyboardInterrupt:
                    self.console.print("")
                    self.info("Port forwarding stopped")
        return result

    def deploy(self, options: DeployOptions, **kwargs: Any) -> PipelineResult:
        """Install or upgrade GrimoireLab on the current cluster.

        Raises:
            DeploymentError: If a prerequisite is missing or a stage fails
        """
        builder = self._builder()
        self.preflight.check(
            Requirements(
                needs_cluster=True,
                values_file=builder.resolve_values_file(options),
            )
        )

        with self.sessions.interrupt_guard(self.cancel):
            result = self._sequencer().run(builder.deploy_stages(options))
        self._raise_on_failure(result)

        if options.dry_run:
            self._report_success(result, "Dry run complete; no changes were made")
            return result

        self._report_success(result, f"Release '{options.release}' deployed")
        self._print_access_hints(builder.endpoints, options.namespace, options.release)
        return result

    def teardown(
        self,
        plan: TeardownPlan,
        *,
        namespace: str,
        release: str,
        cluster_name: str,
        **kwargs: Any,
    ) -> TeardownReport:
        """Remove the deployment according to ``plan``.

        Raises:
            DeploymentError: If any step failed
        """
        if not plan.remove_cluster:
            self.preflight.check(Requirements(needs_cluster=True))

        coordinator = TeardownCoordinator(
            self.commands,
            self.sessions,
            self.confirm,
            namespace=namespace,
            release=release,
            cluster_name=cluster_name,
            console=self.console,
            constants=self.constants,
        )
        report = coordinator.teardown(plan)

        if report.cancelled:
            return report
        if not report.ok:
            failed = [s for s in report.steps if s.status == StepStatus.FAILED]
            raise DeploymentError(
                "Teardown finished with failures",
                "\n".join(f"{s.step.value}: {s.message}" for s in failed),
            )
        self.success("Cleanup complete")
        return report

    def show_status(
        self,
        namespace: str | None = None,
        release: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Display release, pods, services and ingress for a release."""
        namespace = namespace or self.constants.DEFAULT_NAMESPACE
        release = release or self.constants.HELM_RELEASE_NAME
        selector = self.constants.instance_selector(release)

        self.console.print(f"\n[bold]Helm release '{release}'[/bold]")
        status = self.commands.helm.status(release, namespace)
        if status.success:
            self.console.print(status.stdout.strip())
        else:
            self.warning(f"Release '{release}' not found in namespace {namespace}")

        pods = self.commands.kubectl.get_pods(namespace, selector)
        self.console.print("\n[bold]Pods[/bold]")
        if pods:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Name")
            table.add_column("Status")
            table.add_column("Ready")
            table.add_column("Restarts", justify="right")
            for pod in pods:
                status_display = (
                    f"[green]{pod.status}[/green]"
                    if pod.status == "Running"
                    else f"[yellow]{pod.status}[/yellow]"
                )
                ready = "[green]yes[/green]" if pod.ready else "[red]no[/red]"
                table.add_row(pod.name, status_display, ready, str(pod.restarts))
            self.console.print(table)
        else:
            self.console.print("[dim]No pods found[/dim]")

        services = self.commands.kubectl.get_services(namespace, selector)
        self.console.print("\n[bold]Services[/bold]")
        if services:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Name")
            table.add_column("Type")
            table.add_column("Cluster IP")
            table.add_column("Ports")
            for svc in services:
                table.add_row(svc.name, svc.type, svc.cluster_ip, svc.ports)
            self.console.print(table)
        else:
            self.console.print("[dim]No services found[/dim]")

        self.console.print("\n[bold]Ingress[/bold]")
        ingress = self.commands.kubectl.get_resources_output("ingress", namespace, selector)
        self.console.print(ingress.strip() or "[dim]No ingress found[/dim]")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _raise_on_failure(self, result: PipelineResult) -> None:
        if result.ok:
            return
        cause = result.cause
        details = cause.details if isinstance(cause, DeploymentError) else None
        message = cause.message if isinstance(cause, DeploymentError) else str(cause)
        raise StageExecutionError(
            f"Stage '{result.failed_at}' failed: {message}", details
        )

    def _report_success(self, result: PipelineResult, message: str) -> None:
        if result.has_warnings:
            self.warning(f"{message} with {len(result.warnings)} warning(s):")
            for warning in result.warnings:
                self.console.print(f"  [yellow]•[/yellow] {warning}")
        else:
            self.success(message)

    def _open_sessions(self, namespace: str, release: str) -> None:
        for forward in self.constants.PORT_FORWARDS:
            try:
                session = self.sessions.open(
                    forward.label,
                    forward.target(release),
                    forward.local_port,
                    forward.remote_port,
                    namespace,
                )
            except PortForwardError as e:
                logger.debug(f"Port-forward for {forward.label} not started: {e}")
                self.warning(str(e))
                continue
            self.success(f"{session.label}: {session.url}")

    def _print_access_hints(
        self, endpoints: AccessEndpoints, namespace: str, release: str
    ) -> None:
        if endpoints.ingress_host:
            self.info(f"Access GrimoireLab at http://{endpoints.ingress_host}")
            return
        if not endpoints.port_forwards:
            return
        self.console.print("\n[bold]Access via port-forward:[/bold]")
        for forward in endpoints.port_forwards:
            self.console.print(
                f"  {forward.label}: [cyan]kubectl port-forward -n {namespace} "
                f"{forward.target(release)} {forward.local_port}:{forward.remote_port}[/cyan]"
            )
