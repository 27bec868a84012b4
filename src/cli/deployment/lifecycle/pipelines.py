"""Stage definitions for the ``setup`` and ``deploy`` pipelines.

``setup`` brings up a local cluster from nothing:
provision -> ingress -> datastore -> app -> expose

``deploy`` targets an existing cluster:
chart -> datastore -> app -> expose

Every action is idempotent: clusters, namespaces and releases that already
exist are reused, and releases are installed with ``upgrade --install``
whenever they may already be present.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from src.infra.constants import (
    DEFAULT_CONSTANTS,
    DeploymentConstants,
    DeploymentPaths,
    Environment,
    PortForwardTarget,
)
from src.utils.console_like import ConsoleLike, coalesce_console

from ..shell_commands import ClusterProvider, CommandResult
from .errors import PrerequisiteError, StageExecutionError
from .readiness import ReadinessSpec
from .sequencer import Stage, TimeoutPolicy

if TYPE_CHECKING:
    from ..shell_commands import ShellCommands


@dataclass(frozen=True)
class SetupOptions:
    namespace: str = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE
    release: str = DEFAULT_CONSTANTS.HELM_RELEASE_NAME
    cluster_name: str = DEFAULT_CONSTANTS.LOCAL_CLUSTER_NAME
    helm_timeout: str = DEFAULT_CONSTANTS.SETUP_HELM_TIMEOUT
    ready_timeout: float = DEFAULT_CONSTANTS.READY_TIMEOUT_SECONDS
    poll_interval: float = DEFAULT_CONSTANTS.READY_POLL_INTERVAL_SECONDS
    strict: bool = False
    port_forward: bool = True


@dataclass(frozen=True)
class DeployOptions:
    environment: Environment = Environment.LOCAL
    values_file: Path | None = None
    namespace: str = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE
    release: str = DEFAULT_CONSTANTS.HELM_RELEASE_NAME
    dry_run: bool = False
    upgrade: bool = False
    helm_timeout: str = DEFAULT_CONSTANTS.HELM_TIMEOUT
    ready_timeout: float = DEFAULT_CONSTANTS.READY_TIMEOUT_SECONDS
    poll_interval: float = DEFAULT_CONSTANTS.READY_POLL_INTERVAL_SECONDS
    strict: bool = False


@dataclass
class AccessEndpoints:
    """How the operator reaches the deployed services."""

    ingress_host: str | None = None
    port_forwards: list[PortForwardTarget] = field(default_factory=list)


def _check(result: CommandResult, message: str) -> None:
    if not result.success:
        raise StageExecutionError(message, result.stderr or result.stdout or None)


class PipelineBuilder:
    """Builds the stage lists for each command.

    The ``expose`` stage fills ``endpoints`` as a side effect so the caller
    can report access details after the run.
    """

    def __init__(
        self,
        commands: ShellCommands,
        paths: DeploymentPaths,
        console: ConsoleLike | None = None,
        constants: DeploymentConstants | None = None,
    ) -> None:
        self.commands = commands
        self.paths = paths
        self.console = coalesce_console(console)
        self.constants = constants or DEFAULT_CONSTANTS
        self.endpoints = AccessEndpoints()
        self.provider: ClusterProvider | None = None

    def resolve_values_file(self, options: DeployOptions) -> Path:
        """Explicit ``--values`` file, or the environment's overlay."""
        if options.values_file is not None:
            return options.values_file
        return self.paths.values_file(options.environment)

    # =========================================================================
    # Pipelines
    # =========================================================================

    def setup_stages(self, options: SetupOptions) -> list[Stage]:
        policy = TimeoutPolicy.ABORT if options.strict else TimeoutPolicy.WARN

        def readiness(selector: str, namespace: str) -> ReadinessSpec:
            return ReadinessSpec(
                selector=selector,
                namespace=namespace,
                timeout=options.ready_timeout,
                poll_interval=options.poll_interval,
            )

        local_values = self.paths.values_file(Environment.LOCAL)
        value_files = [local_values] if local_values.exists() else []

        return [
            Stage(
                name="provision",
                description=f"Provisioning local cluster '{options.cluster_name}'",
                action=lambda: self._provision(options.cluster_name),
            ),
            Stage(
                name="ingress",
                description="Installing ingress controller",
                action=self._install_ingress,
                readiness=readiness(
                    self.constants.INGRESS_CONTROLLER_SELECTOR,
                    self.constants.INGRESS_NAMESPACE,
                ),
                precondition="provision",
                on_timeout=policy,
            ),
            Stage(
                name="datastore",
                description="Installing GrimoireLab chart (datastores)",
                action=lambda: self._install_release(
                    options.release,
                    options.namespace,
                    value_files=value_files,
                    timeout=options.helm_timeout,
                    upgrade=True,
                    lint=True,
                ),
                readiness=readiness(self.constants.datastore_selector, options.namespace),
                on_timeout=policy,
            ),
            Stage(
                name="app",
                description="Waiting for application components",
                action=lambda: self._verify_release(options.release, options.namespace),
                readiness=readiness(self.constants.app_selector, options.namespace),
                precondition="datastore",
                on_timeout=policy,
            ),
            Stage(
                name="expose",
                description="Resolving access endpoints",
                action=lambda: self._resolve_endpoints(options.namespace),
                precondition="app",
            ),
        ]

    def deploy_stages(self, options: DeployOptions) -> list[Stage]:
        policy = TimeoutPolicy.ABORT if options.strict else TimeoutPolicy.WARN
        value_files = [self.resolve_values_file(options)]

        def readiness(selector: str) -> ReadinessSpec | None:
            if options.dry_run:
                return None
            return ReadinessSpec(
                selector=selector,
                namespace=options.namespace,
                timeout=options.ready_timeout,
                poll_interval=options.poll_interval,
            )

        return [
            Stage(
                name="chart",
                description="Validating Helm chart",
                action=lambda: self._validate_chart(
                    options.release, options.namespace, value_files
                ),
            ),
            Stage(
                name="datastore",
                description="Installing GrimoireLab chart (datastores)",
                action=lambda: self._deploy_release(options, value_files),
                readiness=readiness(self.constants.datastore_selector),
                precondition="chart",
                on_timeout=policy,
            ),
            Stage(
                name="app",
                description="Waiting for application components",
                action=lambda: (
                    None
                    if options.dry_run
                    else self._verify_release(options.release, options.namespace)
                ),
                readiness=readiness(self.constants.app_selector),
                precondition="datastore",
                on_timeout=policy,
            ),
            Stage(
                name="expose",
                description="Resolving access endpoints",
                action=lambda: (
                    None if options.dry_run else self._resolve_endpoints(options.namespace)
                ),
                precondition="app",
            ),
        ]

    # =========================================================================
    # Actions
    # =========================================================================

    def _provision(self, cluster_name: str) -> None:
        provider = self.commands.cluster.detect_provider()
        if provider is None:
            raise PrerequisiteError("Neither kind nor minikube is installed")
        self.provider = provider

        if self.commands.cluster.cluster_exists(cluster_name, provider):
            self.console.info(f"Reusing existing {provider.value} cluster '{cluster_name}'")
        else:
            self.console.info(f"Creating {provider.value} cluster '{cluster_name}'...")
            _check(
                self.commands.cluster.create_cluster(cluster_name, provider),
                f"Failed to create {provider.value} cluster '{cluster_name}'",
            )

        context = self.commands.cluster.context_name(cluster_name, provider)
        _check(
            self.commands.kubectl.use_context(context),
            f"Failed to switch kubectl context to {context}",
        )
        logger.debug(f"Using kubectl context {context}")

    def _install_ingress(self) -> None:
        manifest = self.commands.cluster.ingress_manifest(self.provider)
        _check(
            self.commands.kubectl.apply_manifest(manifest),
            "Failed to install the ingress controller",
        )

    def _validate_chart(
        self, release: str, namespace: str, value_files: list[Path]
    ) -> None:
        chart = self.paths.helm_chart
        _check(
            self.commands.helm.lint(chart, value_files=value_files),
            f"Helm chart at {chart} failed lint",
        )
        _check(
            self.commands.helm.template(release, chart, namespace, value_files=value_files),
            f"Helm chart at {chart} failed to render",
        )

    def _install_release(
        self,
        release: str,
        namespace: str,
        *,
        value_files: list[Path],
        timeout: str,
        upgrade: bool,
        lint: bool = False,
        dry_run: bool = False,
    ) -> None:
        chart = self.paths.helm_chart
        if lint:
            _check(
                self.commands.helm.lint(chart, value_files=value_files),
                f"Helm chart at {chart} failed lint",
            )
        if not dry_run:
            _check(
                self.commands.kubectl.ensure_namespace(namespace),
                f"Failed to create namespace {namespace}",
            )

        verb = "Upgrading" if upgrade else "Installing"
        self.console.info(f"{verb} release '{release}' in namespace {namespace}")
        _check(
            self.commands.helm.install(
                release,
                chart,
                namespace,
                upgrade=upgrade,
                value_files=value_files,
                timeout=timeout,
                dry_run=dry_run,
                on_output=lambda line: logger.debug(f"helm: {line}"),
            ),
            f"Helm {'upgrade' if upgrade else 'install'} of '{release}' failed",
        )

    def _deploy_release(self, options: DeployOptions, value_files: list[Path]) -> None:
        upgrade = options.upgrade or self.commands.helm.release_exists(
            options.release, options.namespace
        )
        self._install_release(
            options.release,
            options.namespace,
            value_files=value_files,
            timeout=options.helm_timeout,
            upgrade=upgrade,
            dry_run=options.dry_run,
        )

    def _verify_release(self, release: str, namespace: str) -> None:
        if not self.commands.helm.release_exists(release, namespace):
            raise StageExecutionError(
                f"Release '{release}' is not listed in namespace {namespace}"
            )

    def _resolve_endpoints(self, namespace: str) -> None:
        self.endpoints = AccessEndpoints(
            ingress_host=self.commands.kubectl.get_ingress_host(namespace),
            port_forwards=list(self.constants.PORT_FORWARDS),
        )
