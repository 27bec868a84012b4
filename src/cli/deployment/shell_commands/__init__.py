"""Shell command abstractions for cluster, Kubernetes and Helm operations.

This package provides the interface for shell commands used during
deployment. It is organized into specialized modules for each tool:

- cluster: Local cluster provisioners (kind, minikube)
- helm: Helm release management
- kubectl: Kubernetes resource management

Usage:
    from src.cli.deployment.shell_commands import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    if commands.helm.release_exists("grimoirelab", "grimoirelab"):
        print("Already installed")
"""

from pathlib import Path

from src.infra.k8s.controller import KubernetesController

from .cluster import ClusterCommands
from .helm import HelmCommands
from .kubectl import KubectlCommands
from .runner import CommandRunner
from .types import ClusterProvider, CommandResult, HelmRelease


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        helm: Helm-related commands
        kubectl: Kubernetes kubectl commands
        cluster: Local cluster provisioner commands
    """

    def __init__(
        self,
        project_root: Path,
        controller: KubernetesController | None = None,
    ) -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
            controller: Optional Kubernetes controller for kubectl operations
        """
        self._project_root = Path(project_root)
        self._runner = CommandRunner(self._project_root)

        self.helm = HelmCommands(self._runner)
        self.kubectl = KubectlCommands(self._runner, controller)
        self.cluster = ClusterCommands(self._runner)

    @property
    def project_root(self) -> Path:
        """Get the project root path."""
        return self._project_root


__all__ = [
    "ShellCommands",
    "CommandResult",
    "HelmRelease",
    "ClusterProvider",
    "ClusterCommands",
    "HelmCommands",
    "KubectlCommands",
    "CommandRunner",
]
