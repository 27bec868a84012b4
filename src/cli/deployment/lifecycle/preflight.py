"""Prerequisite checks run before a pipeline starts."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .errors import PrerequisiteError

if TYPE_CHECKING:
    from ..shell_commands import ShellCommands


@dataclass(frozen=True)
class Requirements:
    """What a command needs before it can run.

    Attributes:
        tools: Executables that must be on PATH
        needs_provisioner: Require kind or minikube
        needs_cluster: Require a reachable cluster
        values_file: Values overlay that must exist
    """

    tools: tuple[str, ...] = ("kubectl", "helm")
    needs_provisioner: bool = False
    needs_cluster: bool = False
    values_file: Path | None = None


class PreflightChecker:
    """Fails fast on the first missing prerequisite."""

    def __init__(
        self,
        commands: ShellCommands,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.commands = commands
        self._which = which

    def check(self, requirements: Requirements) -> None:
        """Verify every requirement.

        Raises:
            PrerequisiteError: On the first requirement that is not met
        """
        for tool in requirements.tools:
            if not self._which(tool):
                raise PrerequisiteError(
                    f"{tool} is not installed or not on PATH",
                    f"Install {tool} and retry.",
                )

        if requirements.needs_provisioner and not (
            self._which("kind") or self._which("minikube")
        ):
            raise PrerequisiteError(
                "Neither kind nor minikube is installed",
                "Install kind (https://kind.sigs.k8s.io) or minikube to create a local cluster.",
            )

        if requirements.needs_cluster and not self.commands.kubectl.cluster_reachable():
            raise PrerequisiteError(
                "Cannot reach the Kubernetes cluster",
                "Check your kubeconfig and current context (kubectl cluster-info).",
            )

        if requirements.values_file is not None and not requirements.values_file.exists():
            raise PrerequisiteError(
                f"Values file not found: {requirements.values_file}",
            )

        logger.debug("Preflight checks passed")
