"""Kubectl-based implementation of KubernetesController.

Uses subprocess calls to kubectl for all operations.
"""

from __future__ import annotations

import asyncio
import json
import subprocess
from pathlib import Path

from loguru import logger

from .controller import (
    ClusterQueryError,
    CommandResult,
    KubernetesController,
    PodInfo,
    ServiceInfo,
)

# "all" leaves out storage, config and routing objects
_COUNTED_RESOURCES = "all,pvc,ingress,configmap,secret"

# Created by Kubernetes in every namespace
_NAMESPACE_DEFAULTS = frozenset({"configmap/kube-root-ca.crt"})
_DEFAULT_SECRET_PREFIX = "secret/default-token-"


def _is_namespace_default(name: str) -> bool:
    return name in _NAMESPACE_DEFAULTS or name.startswith(_DEFAULT_SECRET_PREFIX)


class KubectlController(KubernetesController):
    """Kubernetes controller using kubectl subprocess calls.

    All methods are async but internally use asyncio.to_thread()
    to run blocking subprocess calls without blocking the event loop.
    """

    async def _run_kubectl(
        self,
        args: list[str],
        *,
        capture_output: bool = True,
        input_data: str | None = None,
    ) -> CommandResult:
        """Run a kubectl command asynchronously.

        Args:
            args: Command arguments (without 'kubectl' prefix)
            capture_output: Whether to capture stdout/stderr
            input_data: Optional input to send to stdin

        Returns:
            CommandResult with execution results
        """
        cmd = ["kubectl", *args]

        def _run() -> CommandResult:
            logger.debug(f"Running: {' '.join(cmd)}")
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=capture_output,
                    text=True,
                    input=input_data,
                )
            except FileNotFoundError as e:
                return CommandResult(success=False, stderr=str(e), returncode=127)
            return CommandResult(
                success=result.returncode == 0,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
                returncode=result.returncode,
            )

        return await asyncio.to_thread(_run)

    # =========================================================================
    # Cluster Context
    # =========================================================================

    async def get_current_context(self) -> str:
        """Get the current kubectl context name."""
        result = await self._run_kubectl(["config", "current-context"])
        return result.stdout.strip() if result.success else "unknown"

    async def use_context(self, context: str) -> CommandResult:
        """Switch the current kubectl context."""
        return await self._run_kubectl(["config", "use-context", context])

    async def cluster_reachable(self) -> bool:
        """Check that the API server of the current context answers."""
        result = await self._run_kubectl(["cluster-info"])
        return result.success

    # =========================================================================
    # Namespace Operations
    # =========================================================================

    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        result = await self._run_kubectl(["get", "namespace", namespace])
        if result.success:
            return True
        if "notfound" in result.stderr.replace(" ", "").lower():
            return False
        raise ClusterQueryError(
            f"Could not check namespace {namespace}", result.stderr.strip()
        )

    async def create_namespace(self, namespace: str) -> CommandResult:
        """Create a namespace."""
        return await self._run_kubectl(["create", "namespace", namespace])

    async def delete_namespace(
        self,
        namespace: str,
        *,
        wait: bool = True,
        timeout: str = "120s",
    ) -> CommandResult:
        """Delete a Kubernetes namespace and all its resources."""
        args = ["delete", "namespace", namespace]
        if wait:
            args.append("--wait=true")
            args.extend(["--timeout", timeout])
        return await self._run_kubectl(args)

    async def count_resources(self, namespace: str) -> int | None:
        """Count resources left in a namespace, ignoring per-namespace defaults."""
        result = await self._run_kubectl(
            ["get", _COUNTED_RESOURCES, "-n", namespace, "-o", "name"]
        )
        if not result.success:
            return None
        names = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return len([name for name in names if not _is_namespace_default(name)])

    # =========================================================================
    # Resource Operations
    # =========================================================================

    async def apply_manifest(self, source: Path | str) -> CommandResult:
        """Apply a manifest from a local path or URL."""
        return await self._run_kubectl(["apply", "-f", str(source)])

    async def get_resource_names(
        self,
        resource_type: str,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[str]:
        """List resource names of a type, optionally filtered by selector."""
        args = [
            "get",
            resource_type,
            "-n",
            namespace,
            "-o",
            "jsonpath={.items[*].metadata.name}",
        ]
        if label_selector:
            args.extend(["-l", label_selector])
        result = await self._run_kubectl(args)
        if not result.success:
            raise ClusterQueryError(
                f"Could not list {resource_type} in namespace {namespace}",
                result.stderr.strip(),
            )
        return result.stdout.strip().split()

    async def delete_resources_by_label(
        self,
        resource_types: str,
        namespace: str,
        label_selector: str,
        *,
        force: bool = False,
    ) -> CommandResult:
        """Delete Kubernetes resources matching a label selector."""
        args = [
            "delete",
            resource_types,
            "-n",
            namespace,
            "-l",
            label_selector,
        ]
        if force:
            args.extend(["--force", "--grace-period=0"])
        return await self._run_kubectl(args)

    # =========================================================================
    # Pod Operations
    # =========================================================================

    async def get_pods(
        self,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[PodInfo]:
        """Get pods in a namespace with their status.

        Args:
            namespace: Kubernetes namespace to search
            label_selector: Optional label selector to filter pods

        Returns:
            List of PodInfo objects matching the criteria
        """
        args = ["get", "pods", "-n", namespace, "-o", "json"]
        if label_selector:
            args.extend(["-l", label_selector])

        result = await self._run_kubectl(args)
        if not result.success or not result.stdout:
            return []

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            return []

        return [_parse_pod(pod) for pod in data.get("items", [])]

    async def pods_ready(
        self,
        namespace: str,
        label_selector: str,
        *,
        condition: str = "Ready",
    ) -> bool:
        """Point-in-time check that matching pods report a condition."""
        result = await self._run_kubectl(
            ["get", "pods", "-n", namespace, "-l", label_selector, "-o", "json"]
        )
        if not result.success or not result.stdout:
            return False

        try:
            items = json.loads(result.stdout).get("items", [])
        except json.JSONDecodeError:
            return False

        if not items:
            return False
        return all(_has_condition(pod, condition) for pod in items)

    # =========================================================================
    # Service / Ingress Operations
    # =========================================================================

    async def get_services(
        self,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[ServiceInfo]:
        """Get services in a namespace."""
        args = ["get", "services", "-n", namespace, "-o", "json"]
        if label_selector:
            args.extend(["-l", label_selector])

        result = await self._run_kubectl(args)
        if not result.success or not result.stdout:
            return []

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            return []

        services = []
        for svc in data.get("items", []):
            metadata = svc.get("metadata", {})
            spec = svc.get("spec", {})
            status = svc.get("status", {})

            external_ip = ""
            lb_ingress = status.get("loadBalancer", {}).get("ingress", [])
            if lb_ingress:
                external_ip = lb_ingress[0].get(
                    "ip", lb_ingress[0].get("hostname", "")
                )

            ports = []
            for port in spec.get("ports", []):
                port_str = f"{port.get('port')}"
                if target := port.get("targetPort"):
                    port_str += f":{target}"
                if proto := port.get("protocol"):
                    port_str += f"/{proto}"
                ports.append(port_str)

            services.append(
                ServiceInfo(
                    name=metadata.get("name", ""),
                    type=spec.get("type", ""),
                    cluster_ip=spec.get("clusterIP", ""),
                    external_ip=external_ip,
                    ports=",".join(ports),
                )
            )

        return services

    async def get_ingress_host(self, namespace: str) -> str | None:
        """Host of the first ingress rule in a namespace, if any."""
        result = await self._run_kubectl(
            [
                "get",
                "ingress",
                "-n",
                namespace,
                "-o",
                "jsonpath={.items[0].spec.rules[0].host}",
            ]
        )
        host = result.stdout.strip() if result.success else ""
        return host or None

    async def get_resources_output(
        self,
        resource_type: str,
        namespace: str,
        label_selector: str | None = None,
    ) -> str:
        """Raw ``kubectl get`` table output for display purposes."""
        args = ["get", resource_type, "-n", namespace]
        if label_selector:
            args.extend(["-l", label_selector])
        result = await self._run_kubectl(args)
        return result.stdout if result.success else ""


def _has_condition(pod: dict, condition: str) -> bool:
    for cond in pod.get("status", {}).get("conditions", []):
        if cond.get("type") == condition:
            return cond.get("status") == "True"
    return False


def _parse_pod(pod: dict) -> PodInfo:
    metadata = pod.get("metadata", {})
    status = pod.get("status", {})

    # Waiting reasons (CrashLoopBackOff, ImagePullBackOff) say more than the phase
    pod_status = status.get("phase", "Unknown")
    restarts = 0
    for cs in status.get("containerStatuses", []):
        restarts += cs.get("restartCount", 0)
        state = cs.get("state", {})
        if "waiting" in state:
            reason = state["waiting"].get("reason", "")
            if reason:
                pod_status = reason
        elif "terminated" in state:
            if state["terminated"].get("reason", "") == "Error":
                pod_status = "Error"

    return PodInfo(
        name=metadata.get("name", ""),
        status=pod_status,
        ready=_has_condition(pod, "Ready"),
        restarts=restarts,
        creation_timestamp=metadata.get("creationTimestamp", ""),
        node=pod.get("spec", {}).get("nodeName", ""),
    )
