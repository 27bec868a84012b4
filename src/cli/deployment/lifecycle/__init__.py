"""Deployment lifecycle: readiness, sequencing, teardown and pipelines."""

from .deployer import GrimoireLabDeployer
from .errors import (
    DeploymentError,
    OperationCancelledError,
    PrerequisiteError,
    ReadinessTimeoutError,
    StageExecutionError,
)
from .pipelines import AccessEndpoints, DeployOptions, PipelineBuilder, SetupOptions
from .preflight import PreflightChecker, Requirements
from .readiness import ProbeOutcome, ProbeResult, ReadinessProber, ReadinessSpec
from .sequencer import (
    PipelineResult,
    Stage,
    StageResult,
    StageSequencer,
    StageStatus,
    TimeoutPolicy,
)
from .teardown import (
    StepOutcome,
    StepStatus,
    TeardownCoordinator,
    TeardownPlan,
    TeardownReport,
    TeardownStep,
    requires_confirmation,
)

__all__ = [
    "GrimoireLabDeployer",
    "DeploymentError",
    "OperationCancelledError",
    "PrerequisiteError",
    "ReadinessTimeoutError",
    "StageExecutionError",
    "AccessEndpoints",
    "DeployOptions",
    "PipelineBuilder",
    "SetupOptions",
    "PreflightChecker",
    "Requirements",
    "ProbeOutcome",
    "ProbeResult",
    "ReadinessProber",
    "ReadinessSpec",
    "PipelineResult",
    "Stage",
    "StageResult",
    "StageSequencer",
    "StageStatus",
    "TimeoutPolicy",
    "StepOutcome",
    "StepStatus",
    "TeardownCoordinator",
    "TeardownPlan",
    "TeardownReport",
    "TeardownStep",
    "requires_confirmation",
]
