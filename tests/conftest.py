from unittest.mock import MagicMock

import pytest

from tests.helpers import ok

_SETTINGS_ENV_VARS = (
    "GRIMOIRELAB_NAMESPACE",
    "GRIMOIRELAB_RELEASE",
    "GRIMOIRELAB_CLUSTER_NAME",
    "GRIMOIRELAB_CHART_DIR",
    "GRIMOIRELAB_HELM_TIMEOUT",
    "GRIMOIRELAB_READY_TIMEOUT",
    "GRIMOIRELAB_POLL_INTERVAL",
    "GRIMOIRELAB_STRICT_READINESS",
)


@pytest.fixture(autouse=True)
def _clean_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's GRIMOIRELAB_* variables out of unit tests."""
    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_console() -> MagicMock:
    """Console stand-in satisfying ConsoleLike."""
    return MagicMock()


@pytest.fixture
def mock_commands() -> MagicMock:
    """ShellCommands stand-in with every wrapper succeeding by default."""
    commands = MagicMock()
    commands.helm.install.return_value = ok()
    commands.helm.lint.return_value = ok()
    commands.helm.template.return_value = ok()
    commands.helm.uninstall.return_value = ok()
    commands.helm.is_not_found.return_value = False
    commands.helm.release_exists.return_value = True
    commands.kubectl.ensure_namespace.return_value = ok()
    commands.kubectl.apply_manifest.return_value = ok()
    commands.kubectl.use_context.return_value = ok()
    commands.kubectl.namespace_exists.return_value = True
    commands.kubectl.count_resources.return_value = 0
    commands.kubectl.delete_namespace.return_value = ok()
    commands.kubectl.delete_resources_by_label.return_value = ok()
    commands.kubectl.get_pvcs.return_value = []
    commands.kubectl.get_ingress_host.return_value = None
    commands.cluster.cluster_exists.return_value = True
    commands.cluster.create_cluster.return_value = ok()
    commands.cluster.delete_cluster.return_value = ok()
    commands.cluster.context_name.return_value = "kind-grimoirelab-local"
    return commands
