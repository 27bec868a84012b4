"""Exceptions raised by the deployment lifecycle."""


class DeploymentError(Exception):
    """Raised when a deployment operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class PrerequisiteError(DeploymentError):
    """A required tool, cluster or file is missing."""


class StageExecutionError(DeploymentError):
    """A stage action's underlying command failed."""


class ReadinessTimeoutError(DeploymentError):
    """Pods did not become ready before the deadline (strict mode only)."""


class OperationCancelledError(DeploymentError):
    """The operation was cancelled before it completed."""
