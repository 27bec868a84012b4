"""Helm command abstractions.

This module provides commands for Helm release management,
including chart validation, install/upgrade, uninstallation, and
status queries.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from .types import ClusterQueryError, CommandResult, HelmRelease

if TYPE_CHECKING:
    from .runner import CommandRunner


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Chart validation (lint, template)
    - Release management (install, upgrade, uninstall)
    - Status queries (list releases, release status)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Chart Validation
    # =========================================================================

    def lint(
        self,
        chart_path: Path,
        *,
        value_files: list[Path] | None = None,
    ) -> CommandResult:
        """Lint a chart with optional values overlays."""
        cmd = ["helm", "lint", str(chart_path)]
        for vf in value_files or []:
            cmd.extend(["--values", str(vf)])
        return self._runner.run(cmd)

    def template(
        self,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        value_files: list[Path] | None = None,
    ) -> CommandResult:
        """Render a chart locally to check that templating succeeds."""
        cmd = [
            "helm",
            "template",
            release_name,
            str(chart_path),
            "--namespace",
            namespace,
        ]
        for vf in value_files or []:
            cmd.extend(["--values", str(vf)])
        return self._runner.run(cmd)

    # =========================================================================
    # Release Management
    # =========================================================================

    def install(
        self,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        upgrade: bool = False,
        value_files: list[Path] | None = None,
        timeout: str = "10m",
        wait: bool = False,
        dry_run: bool = False,
        create_namespace: bool = False,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Install a release, or upgrade it in place.

        With ``upgrade=True`` this runs ``helm upgrade --install``, which
        installs the release when missing and upgrades it otherwise.

        Args:
            release_name: Name for the Helm release (e.g., "grimoirelab")
            chart_path: Path to the Helm chart directory
            namespace: Kubernetes namespace for deployment
            upgrade: Use ``upgrade --install`` instead of ``install``
            value_files: Optional list of values overlay files
            timeout: Maximum time Helm waits for its own operations
            wait: Whether Helm itself waits for resources to be ready
            dry_run: Simulate the install without touching the cluster
            create_namespace: Whether Helm creates the namespace
            on_output: Optional callback for real-time output streaming.

        Returns:
            CommandResult with deployment status

        Example:
            >>> helm.install(
            ...     "grimoirelab",
            ...     Path("."),
            ...     "grimoirelab",
            ...     upgrade=True,
            ...     value_files=[Path("values-local.yaml")],
            ... )
        """
        if upgrade:
            cmd = ["helm", "upgrade", "--install"]
        else:
            cmd = ["helm", "install"]
        cmd.extend([release_name, str(chart_path), "--namespace", namespace])

        for vf in value_files or []:
            cmd.extend(["--values", str(vf)])
        cmd.extend(["--timeout", timeout])

        if create_namespace:
            cmd.append("--create-namespace")
        if wait:
            cmd.append("--wait")
        if dry_run:
            cmd.append("--dry-run")

        if on_output:
            return self._runner.run_streaming(cmd, on_output=on_output)
        return self._runner.run(cmd, capture_output=True)

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        wait: bool = True,
    ) -> CommandResult:
        """Uninstall a Helm release.

        Args:
            release_name: Name of the release to uninstall
            namespace: Kubernetes namespace
            wait: Whether to wait for resources to be deleted

        Returns:
            CommandResult with uninstall status; see ``is_not_found``
        """
        cmd = ["helm", "uninstall", release_name, "-n", namespace]
        if wait:
            cmd.append("--wait")
        return self._runner.run(cmd)

    @staticmethod
    def is_not_found(result: CommandResult) -> bool:
        """Whether a failed uninstall/status means the release does not exist."""
        return not result.success and "not found" in result.stderr.lower()

    # =========================================================================
    # Status Queries
    # =========================================================================

    def list_releases(self, namespace: str) -> list[HelmRelease]:
        """List Helm releases in a namespace.

        Args:
            namespace: Kubernetes namespace to query

        Returns:
            List of HelmRelease objects

        Raises:
            ClusterQueryError: If helm could not list the namespace
        """
        cmd = ["helm", "list", "-n", namespace, "-o", "json"]

        result = self._runner.run(cmd)
        if not result.success:
            raise ClusterQueryError(
                f"Could not list Helm releases in namespace {namespace}",
                result.stderr.strip(),
            )
        if not result.stdout.strip():
            return []

        try:
            releases_data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ClusterQueryError(
                f"Unreadable Helm release list for namespace {namespace}", str(e)
            ) from e

        return [
            HelmRelease(
                name=r.get("name", ""),
                namespace=r.get("namespace", ""),
                status=r.get("status", ""),
                revision=str(r.get("revision", "")),
            )
            for r in releases_data
        ]

    def release_exists(self, release_name: str, namespace: str) -> bool:
        """Check whether a release with exactly this name is installed."""
        return any(r.name == release_name for r in self.list_releases(namespace))

    def status(self, release_name: str, namespace: str) -> CommandResult:
        """Get the human-readable status of a release."""
        return self._runner.run(["helm", "status", release_name, "-n", namespace])
