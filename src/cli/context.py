"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
import typer

from src.cli.deployment.lifecycle import GrimoireLabDeployer, TeardownStep
from src.cli.deployment.shell_commands import ShellCommands
from src.cli.shared.console import CLIConsole, console
from src.infra.constants import DeploymentConstants, DeploymentPaths
from src.infra.settings import DeploymentSettings, load_settings
from src.utils.paths import get_project_root

_CONFIRM_TITLES = {
    TeardownStep.REMOVE_CLUSTER: "Delete local cluster",
    TeardownStep.REMOVE_RELEASE: "Uninstall Helm release",
    TeardownStep.REMOVE_PERSISTENT_DATA: "Delete persistent data",
}


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    settings: DeploymentSettings
    constants: DeploymentConstants
    paths: DeploymentPaths
    commands: ShellCommands

    def confirm_step(self, step: TeardownStep, message: str) -> bool:
        """Rich confirmation prompt for a destructive teardown step."""
        extra = None
        if step == TeardownStep.REMOVE_PERSISTENT_DATA:
            extra = "This action is irreversible."
        return self.console.confirm_action(
            _CONFIRM_TITLES.get(step, step.value), message, extra
        )

    def build_deployer(self) -> GrimoireLabDeployer:
        return GrimoireLabDeployer(
            self.console,
            self.project_root,
            commands=self.commands,
            paths=self.paths,
            constants=self.constants,
            confirm=self.confirm_step,
        )


def build_cli_context() -> CLIContext:
    """Build a fresh CLIContext.

    Raises:
        ValueError: If the settings file or environment overrides are invalid
    """
    project_root = get_project_root()
    constants = DeploymentConstants()
    default_paths = DeploymentPaths(project_root)
    settings = load_settings(
        default_paths.settings_yaml, env_file=default_paths.env_file
    )
    paths = DeploymentPaths(project_root, settings.chart_dir)

    return CLIContext(
        console=console,
        project_root=project_root,
        settings=settings,
        constants=constants,
        paths=paths,
        commands=ShellCommands(project_root),
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
