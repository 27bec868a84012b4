"""Shared builders for unit tests."""

from src.cli.deployment.shell_commands.types import CommandResult


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(success=True, stdout=stdout, stderr="", returncode=0)


def failed(stderr: str = "boom", returncode: int = 1) -> CommandResult:
    return CommandResult(success=False, stdout="", stderr=stderr, returncode=returncode)
