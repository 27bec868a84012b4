"""Tests for deployment constants and path resolution."""

from pathlib import Path

import pytest

from src.infra.constants import (
    DeploymentConstants,
    DeploymentPaths,
    Environment,
)


class TestDeploymentConstants:
    def test_selectors(self) -> None:
        constants = DeploymentConstants()

        assert constants.instance_selector("grimoirelab") == (
            "app.kubernetes.io/instance=grimoirelab"
        )
        assert constants.datastore_selector == (
            "app.kubernetes.io/component in (elasticsearch,mariadb)"
        )
        assert constants.app_selector == "app.kubernetes.io/component=kibiter"

    def test_port_forward_targets(self) -> None:
        constants = DeploymentConstants()
        ports = {pf.local_port: pf.target("grimoirelab") for pf in constants.PORT_FORWARDS}

        assert ports == {
            5601: "service/grimoirelab-kibiter",
            8080: "service/grimoirelab-arthur",
        }


class TestDeploymentPaths:
    def test_chart_defaults_to_project_root(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("GRIMOIRELAB_CHART_DIR", raising=False)
        paths = DeploymentPaths(tmp_path)

        assert paths.helm_chart == tmp_path
        assert paths.values_file(Environment.STAGING) == tmp_path / "values-staging.yaml"

    def test_chart_dir_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GRIMOIRELAB_CHART_DIR", "charts/grimoirelab")
        paths = DeploymentPaths(tmp_path)

        assert paths.helm_chart == (tmp_path / "charts/grimoirelab").resolve()

    def test_explicit_chart_dir_wins(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GRIMOIRELAB_CHART_DIR", "/elsewhere")
        paths = DeploymentPaths(tmp_path, chart_dir=tmp_path / "chart")

        assert paths.helm_chart == tmp_path / "chart"
