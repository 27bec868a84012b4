"""Data types for shell command results.

This module contains the dataclasses shared across the shell command
modules. CommandResult is re-exported from src.infra.k8s.controller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Re-export Kubernetes types from canonical location
from src.infra.k8s.controller import ClusterQueryError, CommandResult

__all__ = [
    "ClusterQueryError",
    "CommandResult",
    "HelmRelease",
    "ClusterProvider",
]


@dataclass
class HelmRelease:
    """Information about a Helm release.

    Attributes:
        name: Release name
        namespace: Kubernetes namespace
        status: Release status (deployed, failed, pending, uninstalling)
        revision: Release revision number
    """

    name: str
    namespace: str
    status: str
    revision: str


class ClusterProvider(str, Enum):
    """Local cluster tool used to provision the environment."""

    KIND = "kind"
    MINIKUBE = "minikube"
