"""Shared option types and helpers for CLI commands."""

from typing import Annotated

import typer

from src.utils.durations import normalize_duration


def validate_timeout(value: str | None) -> str | None:
    """Typer callback: accept Go-style durations, normalise bare seconds."""
    if value is None:
        return None
    try:
        return normalize_duration(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


NamespaceOption = Annotated[
    str | None,
    typer.Option("--namespace", "-n", help="Kubernetes namespace"),
]
ReleaseOption = Annotated[
    str | None,
    typer.Option("--release", "-r", help="Helm release name"),
]
ClusterOption = Annotated[
    str | None,
    typer.Option("--cluster", help="Local cluster name (kind/minikube)"),
]
ReadyTimeoutOption = Annotated[
    float | None,
    typer.Option(
        "--ready-timeout",
        min=1,
        help="Seconds to wait for each tier's pods to become ready",
    ),
]
StrictOption = Annotated[
    bool | None,
    typer.Option(
        "--strict/--no-strict",
        help="Fail instead of warning when pods are not ready in time",
        show_default=False,
    ),
]
