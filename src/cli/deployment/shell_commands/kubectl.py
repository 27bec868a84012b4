"""Kubectl command abstractions.

This module provides commands for Kubernetes resource management via kubectl,
delegating to a KubernetesController for the actual operations.

This is a sync wrapper around the async controller so the lifecycle
components can stay synchronous.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from src.infra.k8s import KubernetesController, get_k8s_controller, run_sync
from src.infra.k8s.controller import CommandResult, PodInfo, ServiceInfo

if TYPE_CHECKING:
    from .runner import CommandRunner


class KubectlCommands:
    """Kubectl-related shell commands.

    All methods delegate to the async controller using run_sync().

    Provides operations for:
    - Cluster context and connectivity
    - Namespace management
    - Manifest application and label-based deletion
    - Pod readiness queries
    - Service and ingress lookups
    """

    def __init__(
        self,
        runner: CommandRunner,
        controller: KubernetesController | None = None,
    ) -> None:
        """Initialize kubectl commands.

        Args:
            runner: Command runner (kept for interface parity with other modules)
            controller: Controller to delegate to (defaults to the shared one)
        """
        self._runner = runner
        self._controller = controller or get_k8s_controller()

    # =========================================================================
    # Cluster Context
    # =========================================================================

    def get_current_context(self) -> str:
        """Get the current kubectl context name."""
        return run_sync(self._controller.get_current_context())

    def use_context(self, context: str) -> CommandResult:
        """Switch the current kubectl context."""
        return run_sync(self._controller.use_context(context))

    def cluster_reachable(self) -> bool:
        """Check that the current cluster answers."""
        return run_sync(self._controller.cluster_reachable())

    # =========================================================================
    # Namespace Management
    # =========================================================================

    def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        return run_sync(self._controller.namespace_exists(namespace))

    def ensure_namespace(self, namespace: str) -> CommandResult:
        """Create a namespace unless it already exists.

        Returns:
            Successful CommandResult when the namespace exists afterwards
        """
        if self.namespace_exists(namespace):
            return CommandResult(
                success=True, stdout=f"namespace/{namespace} already exists"
            )
        result = run_sync(self._controller.create_namespace(namespace))
        if not result.success and "alreadyexists" in result.stderr.replace(" ", "").lower():
            # Lost a race with another creator; the namespace is there
            return CommandResult(success=True, stdout=result.stderr)
        return result

    def delete_namespace(
        self,
        namespace: str,
        *,
        wait: bool = True,
        timeout: str = "120s",
    ) -> CommandResult:
        """Delete a Kubernetes namespace and all its resources."""
        return run_sync(
            self._controller.delete_namespace(namespace, wait=wait, timeout=timeout)
        )

    def count_resources(self, namespace: str) -> int | None:
        """Count workload resources in a namespace (None if unknown)."""
        return run_sync(self._controller.count_resources(namespace))

    # =========================================================================
    # Resources
    # =========================================================================

    def apply_manifest(self, source: Path | str) -> CommandResult:
        """Apply a manifest from a local path or URL."""
        return run_sync(self._controller.apply_manifest(source))

    def get_pvcs(self, namespace: str, label_selector: str) -> list[str]:
        """Names of PersistentVolumeClaims matching a selector."""
        return run_sync(
            self._controller.get_resource_names("pvc", namespace, label_selector)
        )

    def delete_resources_by_label(
        self,
        resource_types: str,
        namespace: str,
        label_selector: str,
        *,
        force: bool = False,
    ) -> CommandResult:
        """Delete Kubernetes resources matching a label selector."""
        return run_sync(
            self._controller.delete_resources_by_label(
                resource_types, namespace, label_selector, force=force
            )
        )

    # =========================================================================
    # Pods
    # =========================================================================

    def get_pods(self, namespace: str, label_selector: str | None = None) -> list[PodInfo]:
        """Get pods in a namespace with their status."""
        return run_sync(self._controller.get_pods(namespace, label_selector))

    def pods_ready(
        self,
        namespace: str,
        label_selector: str,
        *,
        condition: str = "Ready",
    ) -> bool:
        """Point-in-time readiness check for pods matching a selector."""
        return run_sync(
            self._controller.pods_ready(namespace, label_selector, condition=condition)
        )

    # =========================================================================
    # Services / Ingress
    # =========================================================================

    def get_services(
        self, namespace: str, label_selector: str | None = None
    ) -> list[ServiceInfo]:
        """Get services in a namespace."""
        return run_sync(self._controller.get_services(namespace, label_selector))

    def get_ingress_host(self, namespace: str) -> str | None:
        """Host of the first ingress rule in a namespace, if any."""
        return run_sync(self._controller.get_ingress_host(namespace))

    def get_resources_output(
        self,
        resource_type: str,
        namespace: str,
        label_selector: str | None = None,
    ) -> str:
        """Raw ``kubectl get`` output for display."""
        return run_sync(
            self._controller.get_resources_output(
                resource_type, namespace, label_selector
            )
        )
