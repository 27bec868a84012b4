"""Tests for the setup and deploy stage definitions."""

from pathlib import Path

import pytest

from src.cli.deployment.lifecycle.errors import PrerequisiteError, StageExecutionError
from src.cli.deployment.lifecycle.pipelines import (
    DeployOptions,
    PipelineBuilder,
    SetupOptions,
)
from src.cli.deployment.lifecycle.sequencer import TimeoutPolicy
from src.cli.deployment.shell_commands.types import ClusterProvider
from src.infra.constants import DeploymentPaths, Environment
from tests.helpers import failed


@pytest.fixture
def paths(tmp_path: Path) -> DeploymentPaths:
    return DeploymentPaths(tmp_path, chart_dir=tmp_path)


@pytest.fixture
def builder(mock_commands, paths, mock_console) -> PipelineBuilder:
    return PipelineBuilder(mock_commands, paths, mock_console)


def _by_name(stages):
    return {stage.name: stage for stage in stages}


class TestSetupStages:
    def test_order_and_readiness(self, builder) -> None:
        stages = builder.setup_stages(SetupOptions())

        assert [s.name for s in stages] == ["provision", "ingress", "datastore", "app", "expose"]
        named = _by_name(stages)
        assert named["ingress"].readiness.namespace == "ingress-nginx"
        assert named["ingress"].readiness.selector == "app.kubernetes.io/component=controller"
        assert named["datastore"].readiness.selector == (
            "app.kubernetes.io/component in (elasticsearch,mariadb)"
        )
        assert named["app"].readiness.selector == "app.kubernetes.io/component=kibiter"
        assert named["expose"].readiness is None
        assert all(s.on_timeout == TimeoutPolicy.WARN for s in stages if s.readiness)

    def test_strict_aborts_on_timeout(self, builder) -> None:
        stages = builder.setup_stages(SetupOptions(strict=True, ready_timeout=42))

        gated = [s for s in stages if s.readiness]
        assert all(s.on_timeout == TimeoutPolicy.ABORT for s in gated)
        assert all(s.readiness.timeout == 42 for s in gated)

    def test_provision_creates_missing_cluster(self, builder, mock_commands) -> None:
        mock_commands.cluster.detect_provider.return_value = ClusterProvider.KIND
        mock_commands.cluster.cluster_exists.return_value = False

        _by_name(builder.setup_stages(SetupOptions()))["provision"].action()

        mock_commands.cluster.create_cluster.assert_called_once_with(
            "grimoirelab-local", ClusterProvider.KIND
        )
        mock_commands.kubectl.use_context.assert_called_once_with("kind-grimoirelab-local")

    def test_provision_reuses_existing_cluster(self, builder, mock_commands) -> None:
        mock_commands.cluster.detect_provider.return_value = ClusterProvider.KIND

        _by_name(builder.setup_stages(SetupOptions()))["provision"].action()

        mock_commands.cluster.create_cluster.assert_not_called()

    def test_provision_without_tool_fails(self, builder, mock_commands) -> None:
        mock_commands.cluster.detect_provider.return_value = None

        with pytest.raises(PrerequisiteError):
            _by_name(builder.setup_stages(SetupOptions()))["provision"].action()

    def test_ingress_uses_provider_manifest(self, builder, mock_commands) -> None:
        mock_commands.cluster.detect_provider.return_value = ClusterProvider.KIND
        mock_commands.cluster.ingress_manifest.return_value = "https://example/kind.yaml"
        stages = _by_name(builder.setup_stages(SetupOptions()))

        stages["provision"].action()
        stages["ingress"].action()

        mock_commands.cluster.ingress_manifest.assert_called_once_with(ClusterProvider.KIND)
        mock_commands.kubectl.apply_manifest.assert_called_once_with("https://example/kind.yaml")

    def test_datastore_lints_and_upgrade_installs(self, builder, mock_commands, paths) -> None:
        local_values = paths.values_file(Environment.LOCAL)
        local_values.write_text("{}\n")

        _by_name(builder.setup_stages(SetupOptions()))["datastore"].action()

        mock_commands.helm.lint.assert_called_once()
        mock_commands.kubectl.ensure_namespace.assert_called_once_with("grimoirelab")
        kwargs = mock_commands.helm.install.call_args.kwargs
        assert kwargs["upgrade"] is True
        assert kwargs["value_files"] == [local_values]
        assert kwargs["timeout"] == "10m"

    def test_failed_command_raises_with_details(self, builder, mock_commands) -> None:
        mock_commands.helm.install.return_value = failed("Error: chart requires kubeVersion")

        with pytest.raises(StageExecutionError) as excinfo:
            _by_name(builder.setup_stages(SetupOptions()))["datastore"].action()

        assert "kubeVersion" in excinfo.value.details

    def test_app_verifies_release_listed(self, builder, mock_commands) -> None:
        mock_commands.helm.release_exists.return_value = False

        with pytest.raises(StageExecutionError):
            _by_name(builder.setup_stages(SetupOptions()))["app"].action()

    def test_expose_records_endpoints(self, builder, mock_commands) -> None:
        mock_commands.kubectl.get_ingress_host.return_value = "grimoirelab.local"

        _by_name(builder.setup_stages(SetupOptions()))["expose"].action()

        assert builder.endpoints.ingress_host == "grimoirelab.local"
        assert [pf.local_port for pf in builder.endpoints.port_forwards] == [5601, 8080]


class TestDeployStages:
    def test_order(self, builder) -> None:
        stages = builder.deploy_stages(DeployOptions())

        assert [s.name for s in stages] == ["chart", "datastore", "app", "expose"]

    def test_values_file_follows_environment(self, builder, paths) -> None:
        options = DeployOptions(environment=Environment.PRODUCTION)

        assert builder.resolve_values_file(options) == paths.helm_chart / "values-production.yaml"

    def test_explicit_values_file_wins(self, builder, tmp_path) -> None:
        custom = tmp_path / "mine.yaml"

        assert builder.resolve_values_file(DeployOptions(values_file=custom)) == custom

    def test_chart_stage_lints_and_renders(self, builder, mock_commands) -> None:
        _by_name(builder.deploy_stages(DeployOptions()))["chart"].action()

        mock_commands.helm.lint.assert_called_once()
        mock_commands.helm.template.assert_called_once()

    def test_fresh_install_then_upgrade_on_rerun(self, builder, mock_commands) -> None:
        mock_commands.helm.release_exists.return_value = False
        _by_name(builder.deploy_stages(DeployOptions()))["datastore"].action()
        first = mock_commands.helm.install.call_args.kwargs

        mock_commands.helm.release_exists.return_value = True
        _by_name(builder.deploy_stages(DeployOptions()))["datastore"].action()
        second = mock_commands.helm.install.call_args.kwargs

        assert first["upgrade"] is False
        assert second["upgrade"] is True
        assert mock_commands.kubectl.ensure_namespace.call_count == 2
        # No create-only commands are issued directly
        mock_commands.kubectl.apply_manifest.assert_not_called()

    def test_upgrade_flag_forces_upgrade(self, builder, mock_commands) -> None:
        mock_commands.helm.release_exists.return_value = False

        _by_name(builder.deploy_stages(DeployOptions(upgrade=True)))["datastore"].action()

        assert mock_commands.helm.install.call_args.kwargs["upgrade"] is True

    def test_dry_run_drops_readiness_and_side_effects(self, builder, mock_commands) -> None:
        stages = _by_name(builder.deploy_stages(DeployOptions(dry_run=True)))

        assert all(stage.readiness is None for stage in stages.values())

        stages["datastore"].action()
        stages["app"].action()
        stages["expose"].action()

        assert mock_commands.helm.install.call_args.kwargs["dry_run"] is True
        mock_commands.kubectl.ensure_namespace.assert_not_called()
        mock_commands.kubectl.get_ingress_host.assert_not_called()

    def test_helm_timeout_passed_through(self, builder, mock_commands) -> None:
        _by_name(builder.deploy_stages(DeployOptions(helm_timeout="20m")))["datastore"].action()

        assert mock_commands.helm.install.call_args.kwargs["timeout"] == "20m"
