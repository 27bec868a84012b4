"""Deployment module for GrimoireLab on Kubernetes.

The package is organized into subpackages:
- shell_commands: Abstractions for helm, kubectl and cluster provisioners
- lifecycle: Readiness probing, stage sequencing, teardown and the deployer
"""

from .lifecycle import DeploymentError, GrimoireLabDeployer

__all__ = ["GrimoireLabDeployer", "DeploymentError"]
