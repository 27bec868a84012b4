"""Local cluster provisioner commands (kind / minikube).

Kind is preferred when both tools are installed.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from typing import TYPE_CHECKING

import yaml  # type: ignore[import-untyped]

from src.infra.constants import DEFAULT_CONSTANTS, DeploymentConstants

from .types import ClusterProvider, CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class ClusterCommands:
    """Commands for creating, inspecting and deleting local clusters."""

    def __init__(
        self,
        runner: CommandRunner,
        constants: DeploymentConstants | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        """Initialize cluster commands.

        Args:
            runner: Command runner for executing shell commands
            constants: Optional deployment constants
            which: Executable lookup (injectable for tests)
        """
        self._runner = runner
        self.constants = constants or DEFAULT_CONSTANTS
        self._which = which

    def detect_provider(self) -> ClusterProvider | None:
        """Return the first installed provisioner, or None."""
        for provider in (ClusterProvider.KIND, ClusterProvider.MINIKUBE):
            if self._which(provider.value):
                return provider
        return None

    def context_name(self, name: str, provider: ClusterProvider) -> str:
        """kubectl context created by the provisioner for a cluster."""
        if provider == ClusterProvider.KIND:
            return f"kind-{name}"
        return name

    def ingress_manifest(self, provider: ClusterProvider | None) -> str:
        """Ingress-nginx manifest flavour for the provisioner."""
        if provider == ClusterProvider.KIND:
            return self.constants.INGRESS_MANIFEST_KIND
        return self.constants.INGRESS_MANIFEST_CLOUD

    def cluster_exists(self, name: str, provider: ClusterProvider) -> bool:
        """Check whether a local cluster with this name exists."""
        if provider == ClusterProvider.KIND:
            result = self._runner.run(["kind", "get", "clusters"])
            if not result.success:
                return False
            return name in [line.strip() for line in result.stdout.splitlines()]

        result = self._runner.run(["minikube", "status", "-p", name])
        return result.success

    def create_cluster(self, name: str, provider: ClusterProvider) -> CommandResult:
        """Create a local cluster sized for the full GrimoireLab stack."""
        if provider == ClusterProvider.KIND:
            return self._runner.run(
                ["kind", "create", "cluster", "--name", name, "--config=-"],
                input_data=self.kind_config(),
            )

        return self._runner.run(
            [
                "minikube",
                "start",
                "-p",
                name,
                "--nodes",
                str(self.constants.MINIKUBE_NODES),
                "--cpus",
                str(self.constants.MINIKUBE_CPUS),
                "--memory",
                str(self.constants.MINIKUBE_MEMORY_MB),
            ]
        )

    def delete_cluster(self, name: str, provider: ClusterProvider) -> CommandResult:
        """Delete a local cluster and everything in it."""
        if provider == ClusterProvider.KIND:
            return self._runner.run(["kind", "delete", "cluster", "--name", name])
        return self._runner.run(["minikube", "delete", "-p", name])

    def kind_config(self) -> str:
        """Kind cluster config: ingress-ready control plane plus workers."""
        control_plane = {
            "role": "control-plane",
            "kubeadmConfigPatches": [
                yaml.safe_dump(
                    {
                        "kind": "InitConfiguration",
                        "nodeRegistration": {
                            "kubeletExtraArgs": {"node-labels": "ingress-ready=true"}
                        },
                    },
                    sort_keys=False,
                )
            ],
            "extraPortMappings": [
                {"containerPort": port, "hostPort": port, "protocol": "TCP"}
                for port in self.constants.KIND_HOST_PORTS
            ],
        }
        config = {
            "kind": "Cluster",
            "apiVersion": "kind.x-k8s.io/v1alpha4",
            "nodes": [control_plane]
            + [{"role": "worker"}] * self.constants.KIND_WORKER_NODES,
        }
        return yaml.safe_dump(config, sort_keys=False)
