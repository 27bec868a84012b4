"""Kubernetes infrastructure abstraction layer.

This module provides a clean abstraction over the cluster control-plane
operations used by the deployment lifecycle, plus the port-forward
session registry.

Example:
    from src.infra.k8s import KubectlController, run_sync

    controller = KubectlController()
    ready = run_sync(
        controller.pods_ready("grimoirelab", "app.kubernetes.io/component=kibiter")
    )
"""

from .controller import (
    ClusterQueryError,
    CommandResult,
    KubernetesController,
    PodInfo,
    ServiceInfo,
)
from .helpers import get_k8s_controller
from .kubectl_controller import KubectlController
from .port_forward import PortForwardError, Session, SessionManager
from .utils import run_sync

__all__ = [
    # Controller classes
    "KubernetesController",
    "KubectlController",
    # Data classes
    "ClusterQueryError",
    "CommandResult",
    "PodInfo",
    "ServiceInfo",
    # Port forwarding
    "PortForwardError",
    "Session",
    "SessionManager",
    # Utilities
    "get_k8s_controller",
    "run_sync",
]
