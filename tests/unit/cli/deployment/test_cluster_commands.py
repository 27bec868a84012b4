"""Tests for local cluster provisioner commands."""

from unittest.mock import MagicMock

import pytest
import yaml

from src.cli.deployment.shell_commands.cluster import ClusterCommands
from src.cli.deployment.shell_commands.types import ClusterProvider
from src.infra.constants import DEFAULT_CONSTANTS
from tests.helpers import failed, ok


@pytest.fixture
def mock_runner() -> MagicMock:
    runner = MagicMock()
    runner.run.return_value = ok()
    return runner


def _commands(runner: MagicMock, installed: set[str]) -> ClusterCommands:
    return ClusterCommands(runner, which=lambda name: f"/usr/bin/{name}" if name in installed else None)


class TestDetectProvider:
    def test_prefers_kind(self, mock_runner) -> None:
        commands = _commands(mock_runner, {"kind", "minikube"})

        assert commands.detect_provider() == ClusterProvider.KIND

    def test_falls_back_to_minikube(self, mock_runner) -> None:
        commands = _commands(mock_runner, {"minikube"})

        assert commands.detect_provider() == ClusterProvider.MINIKUBE

    def test_none_when_missing(self, mock_runner) -> None:
        assert _commands(mock_runner, set()).detect_provider() is None


def test_kind_cluster_exists_parses_list(mock_runner) -> None:
    mock_runner.run.return_value = ok("other\ngrimoirelab-local\n")
    commands = _commands(mock_runner, {"kind"})

    assert commands.cluster_exists("grimoirelab-local", ClusterProvider.KIND)
    assert not commands.cluster_exists("grimoirelab", ClusterProvider.KIND)


def test_minikube_cluster_exists_uses_status(mock_runner) -> None:
    mock_runner.run.return_value = failed()
    commands = _commands(mock_runner, {"minikube"})

    assert not commands.cluster_exists("grimoirelab-local", ClusterProvider.MINIKUBE)
    assert mock_runner.run.call_args[0][0] == ["minikube", "status", "-p", "grimoirelab-local"]


def test_kind_create_pipes_config(mock_runner) -> None:
    commands = _commands(mock_runner, {"kind"})

    commands.create_cluster("grimoirelab-local", ClusterProvider.KIND)

    cmd = mock_runner.run.call_args[0][0]
    assert cmd == ["kind", "create", "cluster", "--name", "grimoirelab-local", "--config=-"]
    config = yaml.safe_load(mock_runner.run.call_args.kwargs["input_data"])
    roles = [node["role"] for node in config["nodes"]]
    assert roles == ["control-plane", "worker", "worker"]
    host_ports = [m["hostPort"] for m in config["nodes"][0]["extraPortMappings"]]
    assert host_ports == [80, 443]
    assert "ingress-ready=true" in config["nodes"][0]["kubeadmConfigPatches"][0]


def test_kind_config_leaves_port_forward_ports_free(mock_runner) -> None:
    config = yaml.safe_load(_commands(mock_runner, {"kind"}).kind_config())

    host_ports = {m["hostPort"] for m in config["nodes"][0]["extraPortMappings"]}
    forwarded = {target.local_port for target in DEFAULT_CONSTANTS.PORT_FORWARDS}
    assert forwarded == {5601, 8080}
    assert not host_ports & forwarded


def test_minikube_create_sizes_cluster(mock_runner) -> None:
    commands = _commands(mock_runner, {"minikube"})

    commands.create_cluster("grimoirelab-local", ClusterProvider.MINIKUBE)

    cmd = mock_runner.run.call_args[0][0]
    assert cmd == [
        "minikube",
        "start",
        "-p",
        "grimoirelab-local",
        "--nodes",
        "3",
        "--cpus",
        "4",
        "--memory",
        "8192",
    ]


def test_context_and_manifest_per_provider(mock_runner) -> None:
    commands = _commands(mock_runner, {"kind"})

    assert commands.context_name("grimoirelab-local", ClusterProvider.KIND) == "kind-grimoirelab-local"
    assert commands.context_name("grimoirelab-local", ClusterProvider.MINIKUBE) == "grimoirelab-local"
    assert "provider/kind" in commands.ingress_manifest(ClusterProvider.KIND)
    assert "provider/cloud" in commands.ingress_manifest(ClusterProvider.MINIKUBE)


def test_delete_cluster_commands(mock_runner) -> None:
    commands = _commands(mock_runner, {"kind", "minikube"})

    commands.delete_cluster("grimoirelab-local", ClusterProvider.KIND)
    assert mock_runner.run.call_args[0][0] == ["kind", "delete", "cluster", "--name", "grimoirelab-local"]

    commands.delete_cluster("grimoirelab-local", ClusterProvider.MINIKUBE)
    assert mock_runner.run.call_args[0][0] == ["minikube", "delete", "-p", "grimoirelab-local"]
