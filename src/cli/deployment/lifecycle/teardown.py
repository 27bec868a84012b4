"""Teardown of a GrimoireLab deployment.

Steps run in a fixed order: stop port-forward sessions, remove the local
cluster (which supersedes everything after it), uninstall the release,
delete persistent volume claims, and finally remove the namespace when it is
empty. Destructive steps ask for confirmation unless forced.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from src.infra.constants import DEFAULT_CONSTANTS, DeploymentConstants
from src.utils.console_like import ConsoleLike, coalesce_console

from .errors import StageExecutionError

if TYPE_CHECKING:
    from src.infra.k8s.port_forward import SessionManager

    from ..shell_commands import ShellCommands


class TeardownStep(str, Enum):
    STOP_SESSIONS = "stop_sessions"
    REMOVE_CLUSTER = "remove_cluster"
    REMOVE_RELEASE = "remove_release"
    REMOVE_PERSISTENT_DATA = "remove_persistent_data"
    REMOVE_NAMESPACE = "remove_namespace"


class StepStatus(str, Enum):
    DONE = "done"
    SKIPPED = "skipped"
    WARNED = "warned"
    FAILED = "failed"
    DECLINED = "declined"


@dataclass(frozen=True)
class TeardownPlan:
    """What the operator asked to remove.

    ``remove_cluster`` supersedes the per-resource steps.
    """

    remove_release: bool = True
    remove_persistent_data: bool = False
    remove_cluster: bool = False
    force: bool = False


@dataclass
class StepOutcome:
    step: TeardownStep
    status: StepStatus
    message: str = ""


@dataclass
class TeardownReport:
    steps: list[StepOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return all(s.status != StepStatus.FAILED for s in self.steps)

    def status_of(self, step: TeardownStep) -> StepStatus | None:
        for outcome in self.steps:
            if outcome.step == step:
                return outcome.status
        return None


ConfirmCallback = Callable[[TeardownStep, str], bool]

_CONFIRMABLE_STEPS = frozenset(
    {
        TeardownStep.REMOVE_CLUSTER,
        TeardownStep.REMOVE_RELEASE,
        TeardownStep.REMOVE_PERSISTENT_DATA,
    }
)


def requires_confirmation(step: TeardownStep, plan: TeardownPlan) -> bool:
    """Whether a step must be confirmed by the operator before it runs."""
    return step in _CONFIRMABLE_STEPS and not plan.force


class _Declined(Exception):
    """Operator declined a confirmation prompt."""


class TeardownCoordinator:
    """Removes a deployment step by step, recording each outcome."""

    def __init__(
        self,
        commands: ShellCommands,
        sessions: SessionManager,
        confirm: ConfirmCallback,
        *,
        namespace: str,
        release: str,
        cluster_name: str,
        console: ConsoleLike | None = None,
        constants: DeploymentConstants | None = None,
    ) -> None:
        self.commands = commands
        self.sessions = sessions
        self._confirm = confirm
        self.namespace = namespace
        self.release = release
        self.cluster_name = cluster_name
        self.console = coalesce_console(console)
        self.constants = constants or DEFAULT_CONSTANTS

    def teardown(self, plan: TeardownPlan) -> TeardownReport:
        report = TeardownReport()

        self._run_step(report, plan, TeardownStep.STOP_SESSIONS, self._stop_sessions)
        if plan.remove_cluster:
            self._run_step(report, plan, TeardownStep.REMOVE_CLUSTER, self._remove_cluster)
            return report

        steps: list[tuple[TeardownStep, Callable[[TeardownPlan], StepOutcome]]] = []
        if plan.remove_release:
            steps.append((TeardownStep.REMOVE_RELEASE, self._remove_release))
        if plan.remove_persistent_data:
            steps.append((TeardownStep.REMOVE_PERSISTENT_DATA, self._remove_persistent_data))
        steps.append((TeardownStep.REMOVE_NAMESPACE, self._remove_namespace))

        for step, handler in steps:
            if not self._run_step(report, plan, step, handler):
                break
        return report

    # =========================================================================
    # Step Runner
    # =========================================================================

    def _run_step(
        self,
        report: TeardownReport,
        plan: TeardownPlan,
        step: TeardownStep,
        handler: Callable[[TeardownPlan], StepOutcome],
    ) -> bool:
        """Run one step; returns False when the teardown must stop."""
        logger.debug(f"Teardown step {step.value} starting")
        try:
            outcome = handler(plan)
        except _Declined:
            report.steps.append(StepOutcome(step, StepStatus.DECLINED, "Declined"))
            report.cancelled = True
            self.console.warn("Operation cancelled")
            return False
        except Exception as e:
            outcome = StepOutcome(step, StepStatus.FAILED, str(e))

        report.steps.append(outcome)
        logger.debug(f"Teardown step {step.value}: {outcome.status.value}")
        if outcome.status == StepStatus.FAILED:
            self.console.error(outcome.message)
        elif outcome.status == StepStatus.WARNED:
            self.console.warn(outcome.message)
        elif outcome.status == StepStatus.DONE:
            self.console.ok(outcome.message)
        elif outcome.message:
            self.console.info(outcome.message)
        return True

    def _ask(self, step: TeardownStep, plan: TeardownPlan, message: str) -> None:
        if requires_confirmation(step, plan) and not self._confirm(step, message):
            raise _Declined()

    # =========================================================================
    # Steps
    # =========================================================================

    def _stop_sessions(self, plan: TeardownPlan) -> StepOutcome:
        count = len(self.sessions)
        self.sessions.close_all()
        if count:
            return StepOutcome(
                TeardownStep.STOP_SESSIONS, StepStatus.DONE, f"Stopped {count} port-forward(s)"
            )
        return StepOutcome(TeardownStep.STOP_SESSIONS, StepStatus.SKIPPED)

    def _remove_cluster(self, plan: TeardownPlan) -> StepOutcome:
        step = TeardownStep.REMOVE_CLUSTER
        provider = self.commands.cluster.detect_provider()
        if provider is None:
            return StepOutcome(
                step, StepStatus.WARNED, "Neither kind nor minikube is installed"
            )
        if not self.commands.cluster.cluster_exists(self.cluster_name, provider):
            return StepOutcome(
                step,
                StepStatus.WARNED,
                f"Cluster '{self.cluster_name}' not found ({provider.value})",
            )

        self._ask(
            step,
            plan,
            f"This will delete the {provider.value} cluster '{self.cluster_name}' "
            "and everything in it.",
        )
        result = self.commands.cluster.delete_cluster(self.cluster_name, provider)
        if not result.success:
            raise StageExecutionError(
                f"Failed to delete cluster '{self.cluster_name}'", result.stderr
            )
        return StepOutcome(step, StepStatus.DONE, f"Cluster '{self.cluster_name}' deleted")

    def _remove_release(self, plan: TeardownPlan) -> StepOutcome:
        step = TeardownStep.REMOVE_RELEASE
        if not self.commands.helm.release_exists(self.release, self.namespace):
            self.console.warn(
                f"Release '{self.release}' not found in namespace {self.namespace}"
            )
            return StepOutcome(step, StepStatus.SKIPPED)

        self._ask(
            step,
            plan,
            f"This will uninstall release '{self.release}' from namespace {self.namespace}.",
        )
        result = self.commands.helm.uninstall(self.release, self.namespace)
        if self.commands.helm.is_not_found(result):
            return StepOutcome(step, StepStatus.SKIPPED, f"Release '{self.release}' already gone")
        if not result.success:
            raise StageExecutionError(
                f"Failed to uninstall release '{self.release}'", result.stderr
            )
        return StepOutcome(step, StepStatus.DONE, f"Release '{self.release}' uninstalled")

    def _remove_persistent_data(self, plan: TeardownPlan) -> StepOutcome:
        step = TeardownStep.REMOVE_PERSISTENT_DATA
        selector = self.constants.instance_selector(self.release)
        pvcs = self.commands.kubectl.get_pvcs(self.namespace, selector)
        if not pvcs:
            return StepOutcome(step, StepStatus.SKIPPED)

        self._ask(
            step,
            plan,
            f"This will permanently delete {len(pvcs)} persistent volume claim(s): "
            f"{', '.join(pvcs)}. Data cannot be recovered.",
        )
        result = self.commands.kubectl.delete_resources_by_label(
            "pvc", self.namespace, selector
        )
        if not result.success:
            raise StageExecutionError("Failed to delete persistent volume claims", result.stderr)
        return StepOutcome(step, StepStatus.DONE, f"Deleted {len(pvcs)} PVC(s)")

    def _remove_namespace(self, plan: TeardownPlan) -> StepOutcome:
        step = TeardownStep.REMOVE_NAMESPACE
        if not self.commands.kubectl.namespace_exists(self.namespace):
            return StepOutcome(step, StepStatus.SKIPPED)

        # Unknown counts are treated as non-empty; force never deletes a busy namespace
        remaining = self.commands.kubectl.count_resources(self.namespace)
        if remaining != 0:
            detail = "unknown number of" if remaining is None else str(remaining)
            return StepOutcome(
                step,
                StepStatus.WARNED,
                f"Namespace {self.namespace} still has {detail} resource(s); not deleting it",
            )

        result = self.commands.kubectl.delete_namespace(
            self.namespace, timeout=self.constants.NAMESPACE_DELETE_TIMEOUT
        )
        if not result.success:
            raise StageExecutionError(
                f"Failed to delete namespace {self.namespace}", result.stderr
            )
        return StepOutcome(step, StepStatus.DONE, f"Namespace {self.namespace} deleted")
