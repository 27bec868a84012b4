"""Deployment settings loading.

Settings come from three layers, later layers winning:

1. ``DeploymentConstants`` defaults
2. an optional ``deploy.yaml`` with a top-level ``config:`` key
3. ``GRIMOIRELAB_*`` environment variables (``.env`` is loaded first)

CLI options are applied on top by the commands themselves.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.infra.constants import DEFAULT_CONSTANTS
from src.utils.durations import normalize_duration

ENV_PREFIX = "GRIMOIRELAB_"

# Environment variable suffix -> settings field
_ENV_FIELDS: dict[str, str] = {
    "NAMESPACE": "namespace",
    "RELEASE": "release",
    "CLUSTER_NAME": "cluster_name",
    "CHART_DIR": "chart_dir",
    "HELM_TIMEOUT": "helm_timeout",
    "READY_TIMEOUT": "ready_timeout",
    "POLL_INTERVAL": "poll_interval",
    "STRICT_READINESS": "strict_readiness",
}


class DeploymentSettings(BaseModel):
    """Validated deployment settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    namespace: str = Field(default=DEFAULT_CONSTANTS.DEFAULT_NAMESPACE, min_length=1)
    release: str = Field(default=DEFAULT_CONSTANTS.HELM_RELEASE_NAME, min_length=1)
    cluster_name: str = Field(
        default=DEFAULT_CONSTANTS.LOCAL_CLUSTER_NAME, min_length=1
    )
    chart_dir: Path | None = None
    helm_timeout: str = DEFAULT_CONSTANTS.HELM_TIMEOUT
    ready_timeout: float = Field(
        default=DEFAULT_CONSTANTS.READY_TIMEOUT_SECONDS, gt=0
    )
    poll_interval: float = Field(
        default=DEFAULT_CONSTANTS.READY_POLL_INTERVAL_SECONDS, gt=0
    )
    strict_readiness: bool = False

    @field_validator("helm_timeout")
    @classmethod
    def _validate_helm_timeout(cls, value: str) -> str:
        return normalize_duration(value)


def _read_settings_file(file_path: Path) -> dict[str, Any]:
    """Read the ``config:`` section of a settings YAML file."""
    with open(file_path) as f:
        content = f.read()

    try:
        loaded = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML in {file_path}: {e}") from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict) or "config" not in loaded:
        raise ValueError(f"Invalid settings file {file_path}: missing 'config' key")

    section = loaded["config"] or {}
    if not isinstance(section, dict):
        raise ValueError(f"Invalid settings file {file_path}: 'config' must be a mapping")
    return section


def _env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    overrides = {}
    for suffix, field_name in _ENV_FIELDS.items():
        value = environ.get(f"{ENV_PREFIX}{suffix}")
        if value:
            overrides[field_name] = value
    return overrides


def load_settings(
    file_path: Path | None = None,
    *,
    env_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> DeploymentSettings:
    """Load deployment settings from file and environment.

    Args:
        file_path: Optional settings YAML (skipped when missing)
        env_file: Optional .env file loaded into the process environment
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated DeploymentSettings

    Raises:
        ValueError: If the file is malformed or a value fails validation
    """
    if env_file is not None and env_file.exists():
        load_dotenv(env_file, override=False)

    data: dict[str, Any] = {}
    if file_path is not None and file_path.exists():
        logger.info(f"Loading deployment settings from {file_path}")
        data.update(_read_settings_file(file_path))

    overrides = _env_overrides(os.environ if environ is None else environ)
    if overrides:
        logger.debug(f"Applying environment overrides: {sorted(overrides)}")
    data.update(overrides)

    try:
        return DeploymentSettings.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid deployment settings: {e}") from e
