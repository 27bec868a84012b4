"""Deployment constants and configuration.

This module centralizes all magic strings, paths, and configuration values
used throughout the GrimoireLab deployment lifecycle.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Environment(str, Enum):
    """Target environment, selecting the values overlay file."""

    LOCAL = "local"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass(frozen=True)
class PortForwardTarget:
    """A cluster service exposed locally after a successful setup."""

    label: str
    service_suffix: str
    local_port: int
    remote_port: int

    def target(self, release: str) -> str:
        """Resource reference for ``kubectl port-forward`` (service/<name>)."""
        return f"service/{release}-{self.service_suffix}"


@dataclass(frozen=True)
class DeploymentConstants:
    """Constants for the GrimoireLab Kubernetes/Helm deployment.

    All attributes are class-level and immutable.
    """

    # Kubernetes/Helm identifiers
    DEFAULT_NAMESPACE: str = "grimoirelab"
    HELM_RELEASE_NAME: str = "grimoirelab"
    LOCAL_CLUSTER_NAME: str = "grimoirelab-local"
    INSTANCE_LABEL_KEY: str = "app.kubernetes.io/instance"
    COMPONENT_LABEL_KEY: str = "app.kubernetes.io/component"

    # Readiness selectors
    INGRESS_NAMESPACE: str = "ingress-nginx"
    INGRESS_CONTROLLER_SELECTOR: str = "app.kubernetes.io/component=controller"
    DATASTORE_COMPONENTS: tuple[str, ...] = ("elasticsearch", "mariadb")
    APP_COMPONENTS: tuple[str, ...] = ("kibiter",)

    # Timeouts
    HELM_TIMEOUT: str = "15m"
    SETUP_HELM_TIMEOUT: str = "10m"
    READY_TIMEOUT_SECONDS: float = 300.0
    READY_POLL_INTERVAL_SECONDS: float = 5.0
    NAMESPACE_DELETE_TIMEOUT: str = "120s"

    # Port forwarding
    PORT_FORWARD_WAIT_SECONDS: float = 2.0
    PORT_FORWARD_STOP_TIMEOUT_SECONDS: float = 5.0
    PORT_FORWARDS: tuple[PortForwardTarget, ...] = (
        PortForwardTarget("Kibiter Dashboard", "kibiter", 5601, 5601),
        PortForwardTarget("Arthur API", "arthur", 8080, 8080),
    )

    # Ingress controller manifests (kind needs the host-port flavour)
    INGRESS_MANIFEST_KIND: str = (
        "https://raw.githubusercontent.com/kubernetes/ingress-nginx/main/"
        "deploy/static/provider/kind/deploy.yaml"
    )
    INGRESS_MANIFEST_CLOUD: str = (
        "https://raw.githubusercontent.com/kubernetes/ingress-nginx/main/"
        "deploy/static/provider/cloud/deploy.yaml"
    )

    # Local cluster sizing
    # Ingress only; port-forward local ports must stay free on the host
    KIND_HOST_PORTS: tuple[int, ...] = (80, 443)
    KIND_WORKER_NODES: int = 2
    MINIKUBE_NODES: int = 3
    MINIKUBE_CPUS: int = 4
    MINIKUBE_MEMORY_MB: int = 8192

    # Chart layout
    CHART_DIR_ENV_VAR: str = "GRIMOIRELAB_CHART_DIR"
    DEFAULT_VALUES_FILE: str = "values.yaml"
    SETTINGS_FILE: str = "deploy.yaml"

    def instance_selector(self, release: str) -> str:
        """Label selector matching every resource owned by a release."""
        return f"{self.INSTANCE_LABEL_KEY}={release}"

    def component_selector(self, components: tuple[str, ...]) -> str:
        """Label selector for one or more chart components.

        A single component uses an equality selector; several use a
        set-based ``in`` selector so one readiness check covers the tier.
        """
        if len(components) == 1:
            return f"{self.COMPONENT_LABEL_KEY}={components[0]}"
        return f"{self.COMPONENT_LABEL_KEY} in ({','.join(components)})"

    @property
    def datastore_selector(self) -> str:
        return self.component_selector(self.DATASTORE_COMPONENTS)

    @property
    def app_selector(self) -> str:
        return self.component_selector(self.APP_COMPONENTS)


class DeploymentPaths:
    """Path resolver for the Helm chart and its values overlays.

    The chart directory defaults to the project root and can be overridden
    with the ``GRIMOIRELAB_CHART_DIR`` environment variable.
    """

    def __init__(self, project_root: Path, chart_dir: Path | None = None) -> None:
        """Initialize deployment paths.

        Args:
            project_root: Path to the project root directory
            chart_dir: Explicit chart directory (overrides the environment)
        """
        self._project_root = project_root
        self._constants = DEFAULT_CONSTANTS

        if chart_dir is None:
            env_dir = os.environ.get(self._constants.CHART_DIR_ENV_VAR)
            chart_dir = Path(env_dir) if env_dir else project_root
        if not chart_dir.is_absolute():
            chart_dir = (project_root / chart_dir).resolve()
        self.helm_chart = chart_dir

    @property
    def project_root(self) -> Path:
        """Get path to project root."""
        return self._project_root

    @property
    def values_yaml(self) -> Path:
        """Get path to the chart's default values.yaml."""
        return self.helm_chart / self._constants.DEFAULT_VALUES_FILE

    def values_file(self, environment: Environment) -> Path:
        """Get the values overlay for an environment (values-<env>.yaml)."""
        return self.helm_chart / f"values-{environment.value}.yaml"

    @property
    def settings_yaml(self) -> Path:
        """Get path to the optional deploy.yaml settings file."""
        return self.project_root / self._constants.SETTINGS_FILE

    @property
    def env_file(self) -> Path:
        """Get path to .env file."""
        return self.project_root / ".env"


DEFAULT_CONSTANTS = DeploymentConstants()
