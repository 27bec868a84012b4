"""Tests for the synchronous kubectl wrapper."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.cli.deployment.shell_commands.kubectl import KubectlCommands
from tests.helpers import failed, ok


@pytest.fixture
def controller() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def kubectl(controller: AsyncMock) -> KubectlCommands:
    return KubectlCommands(MagicMock(), controller)


class TestEnsureNamespace:
    def test_existing_namespace_is_not_recreated(self, kubectl, controller) -> None:
        controller.namespace_exists.return_value = True

        result = kubectl.ensure_namespace("grimoirelab")

        assert result.success
        controller.create_namespace.assert_not_called()

    def test_creates_missing_namespace(self, kubectl, controller) -> None:
        controller.namespace_exists.return_value = False
        controller.create_namespace.return_value = ok("namespace/grimoirelab created")

        result = kubectl.ensure_namespace("grimoirelab")

        assert result.success
        controller.create_namespace.assert_awaited_once_with("grimoirelab")

    def test_already_exists_race_is_success(self, kubectl, controller) -> None:
        controller.namespace_exists.return_value = False
        controller.create_namespace.return_value = failed(
            'Error from server (AlreadyExists): namespaces "grimoirelab" already exists'
        )

        assert kubectl.ensure_namespace("grimoirelab").success

    def test_other_failures_propagate(self, kubectl, controller) -> None:
        controller.namespace_exists.return_value = False
        controller.create_namespace.return_value = failed("Forbidden")

        assert not kubectl.ensure_namespace("grimoirelab").success


def test_pods_ready_delegates_to_controller(kubectl, controller) -> None:
    controller.pods_ready.return_value = True

    assert kubectl.pods_ready("grimoirelab", "app.kubernetes.io/component=kibiter")
    controller.pods_ready.assert_awaited_once_with(
        "grimoirelab", "app.kubernetes.io/component=kibiter", condition="Ready"
    )


def test_get_pvcs_uses_selector(kubectl, controller) -> None:
    controller.get_resource_names.return_value = ["data-es-0"]

    assert kubectl.get_pvcs("grimoirelab", "app.kubernetes.io/instance=grimoirelab") == [
        "data-es-0"
    ]
    controller.get_resource_names.assert_awaited_once_with(
        "pvc", "grimoirelab", "app.kubernetes.io/instance=grimoirelab"
    )
