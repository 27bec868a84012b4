"""Abstract Kubernetes controller interface.

Defines the contract for the cluster control-plane operations the
deployment lifecycle needs. Implementations may use different backends
(kubectl subprocess today).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


class ClusterQueryError(RuntimeError):
    """A read-only cluster query failed, so its answer is unknown."""

    def __init__(self, message: str, details: str = "") -> None:
        super().__init__(f"{message}: {details}" if details else message)
        self.details = details


@dataclass
class PodInfo:
    """Information about a Kubernetes pod."""

    name: str
    status: str
    ready: bool = False
    restarts: int = 0
    creation_timestamp: str = ""
    node: str = ""


@dataclass
class ServiceInfo:
    """Information about a Kubernetes Service."""

    name: str
    type: str
    cluster_ip: str
    external_ip: str = ""
    ports: str = ""


# =============================================================================
# Abstract Controller
# =============================================================================


class KubernetesController(ABC):
    """Abstract base class for Kubernetes operations.

    All methods are async. Use `run_sync()` to call from synchronous code.

    Existence queries raise ClusterQueryError when the cluster cannot
    answer, so "absent" always means absent. Display queries treat a
    failure as empty. Mutating methods return a CommandResult so callers
    decide whether a failure is fatal.
    """

    # =========================================================================
    # Cluster Context
    # =========================================================================

    @abstractmethod
    async def get_current_context(self) -> str:
        """Get the current kubectl context name, or "unknown"."""
        ...

    @abstractmethod
    async def use_context(self, context: str) -> CommandResult:
        """Switch the current kubectl context."""
        ...

    @abstractmethod
    async def cluster_reachable(self) -> bool:
        """Check that the API server of the current context answers."""
        ...

    # =========================================================================
    # Namespace Operations
    # =========================================================================

    @abstractmethod
    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists.

        Raises:
            ClusterQueryError: If the cluster could not be queried
        """
        ...

    @abstractmethod
    async def create_namespace(self, namespace: str) -> CommandResult:
        """Create a namespace."""
        ...

    @abstractmethod
    async def delete_namespace(
        self,
        namespace: str,
        *,
        wait: bool = True,
        timeout: str = "120s",
    ) -> CommandResult:
        """Delete a Kubernetes namespace and all its resources.

        Warning: This is a destructive operation.
        """
        ...

    @abstractmethod
    async def count_resources(self, namespace: str) -> int | None:
        """Count resources left in a namespace.

        Covers workloads plus PVCs, ingresses, configmaps and secrets.
        Objects Kubernetes creates in every namespace are not counted.

        Returns:
            Number of resources, or None if the query failed
        """
        ...

    # =========================================================================
    # Resource Operations
    # =========================================================================

    @abstractmethod
    async def apply_manifest(self, source: Path | str) -> CommandResult:
        """Apply a manifest from a local path or URL."""
        ...

    @abstractmethod
    async def get_resource_names(
        self,
        resource_type: str,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[str]:
        """List resource names of a type, optionally filtered by selector.

        Raises:
            ClusterQueryError: If the cluster could not be queried
        """
        ...

    @abstractmethod
    async def delete_resources_by_label(
        self,
        resource_types: str,
        namespace: str,
        label_selector: str,
        *,
        force: bool = False,
    ) -> CommandResult:
        """Delete Kubernetes resources matching a label selector.

        Args:
            resource_types: Comma-separated resource types (e.g., "pvc")
            namespace: Kubernetes namespace
            label_selector: Label selector
            force: Whether to force delete (bypass graceful deletion)
        """
        ...

    # =========================================================================
    # Pod Operations
    # =========================================================================

    @abstractmethod
    async def get_pods(
        self,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[PodInfo]:
        """Get pods in a namespace with their status."""
        ...

    @abstractmethod
    async def pods_ready(
        self,
        namespace: str,
        label_selector: str,
        *,
        condition: str = "Ready",
    ) -> bool:
        """Point-in-time check that matching pods report a condition.

        True only when at least one pod matches and every matching pod
        has the condition set to "True".
        """
        ...

    # =========================================================================
    # Service / Ingress Operations
    # =========================================================================

    @abstractmethod
    async def get_services(
        self,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[ServiceInfo]:
        """Get services in a namespace."""
        ...

    @abstractmethod
    async def get_ingress_host(self, namespace: str) -> str | None:
        """Host of the first ingress rule in a namespace, if any."""
        ...

    @abstractmethod
    async def get_resources_output(
        self,
        resource_type: str,
        namespace: str,
        label_selector: str | None = None,
    ) -> str:
        """Raw ``kubectl get`` table output for display purposes."""
        ...
