"""Tests for the port-forward session manager."""

import signal
import subprocess
import threading
from unittest.mock import MagicMock, patch

import pytest

from src.infra.k8s.port_forward import PortForwardError, SessionManager


def _process(alive: bool = True, stderr: str = "") -> MagicMock:
    process = MagicMock()
    process.poll.return_value = None if alive else 1
    process.returncode = None if alive else 1
    process.stderr.read.return_value = stderr
    return process


@pytest.fixture
def popen() -> MagicMock:
    mock = MagicMock()
    mock.side_effect = lambda *args, **kwargs: _process()
    return mock


@pytest.fixture
def manager(popen: MagicMock) -> SessionManager:
    return SessionManager(
        wait_time=0,
        stop_timeout=1,
        popen=popen,
        port_in_use=lambda port: False,
        sleep=lambda seconds: None,
    )


class TestOpen:
    def test_starts_kubectl_port_forward(self, manager, popen) -> None:
        session = manager.open(
            "Kibiter Dashboard", "service/grimoirelab-kibiter", 5601, 5601, "grimoirelab"
        )

        cmd = popen.call_args[0][0]
        assert cmd == [
            "kubectl",
            "port-forward",
            "-n",
            "grimoirelab",
            "service/grimoirelab-kibiter",
            "5601:5601",
        ]
        assert session.url == "http://localhost:5601"
        assert manager.get(5601) is session
        assert len(manager) == 1

    def test_same_port_replaces_existing_session(self, manager, popen) -> None:
        first = manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")
        second = manager.open("Kibiter", "service/b", 5601, 5601, "grimoirelab")

        first.process.terminate.assert_called_once()
        assert manager.sessions == [second]
        assert popen.call_count == 2

    def test_port_held_by_untracked_process_raises(self, popen) -> None:
        manager = SessionManager(
            wait_time=0,
            popen=popen,
            port_in_use=lambda port: True,
            sleep=lambda seconds: None,
        )

        with pytest.raises(PortForwardError, match="5601"):
            manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")

        popen.assert_not_called()
        assert len(manager) == 0

    def test_early_exit_unregisters_and_raises(self, manager, popen) -> None:
        popen.side_effect = lambda *args, **kwargs: _process(
            alive=False, stderr="error: service not found"
        )

        with pytest.raises(PortForwardError, match="service not found"):
            manager.open("Arthur", "service/missing", 8080, 8080, "grimoirelab")

        assert manager.get(8080) is None

    def test_registered_before_grace_wait(self, popen) -> None:
        seen: list[int] = []
        manager = SessionManager(
            wait_time=2,
            popen=popen,
            port_in_use=lambda port: False,
            sleep=lambda seconds: seen.append(len(manager)),
        )

        manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")

        assert seen == [1]

    def test_interrupt_before_registration_kills_process(self, manager, popen) -> None:
        process = _process()
        popen.side_effect = None
        popen.return_value = process

        with patch("src.infra.k8s.port_forward.Session", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")

        process.kill.assert_called_once()
        assert len(manager) == 0


class TestClose:
    def test_close_all_terminates_every_session(self, manager) -> None:
        a = manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")
        b = manager.open("Arthur", "service/b", 8080, 8080, "grimoirelab")

        manager.close_all()

        a.process.terminate.assert_called_once()
        b.process.terminate.assert_called_once()
        assert len(manager) == 0

    def test_kills_after_stop_timeout(self, manager) -> None:
        session = manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")
        session.process.wait.side_effect = [
            subprocess.TimeoutExpired(cmd="kubectl", timeout=1),
            0,
        ]

        manager.close(5601)

        session.process.kill.assert_called_once()

    def test_dead_process_is_not_an_error(self, manager) -> None:
        session = manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")
        session.process.poll.return_value = 0

        manager.close_all()

        session.process.terminate.assert_not_called()
        assert len(manager) == 0

    def test_close_all_never_raises(self, manager) -> None:
        session = manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")
        session.process.terminate.side_effect = OSError("gone")

        manager.close_all()

        assert len(manager) == 0

    def test_close_untracked_port_is_noop(self, manager) -> None:
        manager.close(9999)


def test_wait_returns_when_sessions_die(manager) -> None:
    session = manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")
    session.process.poll.return_value = 1

    manager.wait(poll_interval=0)

    assert len(manager) == 0


def test_interrupt_guard_closes_sessions_and_restores_handlers(manager) -> None:
    before = signal.getsignal(signal.SIGINT)

    with manager.interrupt_guard():
        session = manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")
        assert signal.getsignal(signal.SIGINT) is not before

    session.process.terminate.assert_called_once()
    assert len(manager) == 0
    assert signal.getsignal(signal.SIGINT) is before


def test_interrupt_guard_handler_raises_keyboard_interrupt(manager) -> None:
    with pytest.raises(KeyboardInterrupt):
        with manager.interrupt_guard():
            session = manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")
            handler = signal.getsignal(signal.SIGTERM)
            handler(signal.SIGTERM, None)

    session.process.terminate.assert_called_once()


def test_interrupt_guard_handler_sets_cancel_event(manager) -> None:
    cancel = threading.Event()

    with pytest.raises(KeyboardInterrupt):
        with manager.interrupt_guard(cancel):
            handler = signal.getsignal(signal.SIGINT)
            handler(signal.SIGINT, None)

    assert cancel.is_set()


def test_interrupt_guard_leaves_cancel_clear_on_normal_exit(manager) -> None:
    cancel = threading.Event()

    with manager.interrupt_guard(cancel):
        manager.open("Kibiter", "service/a", 5601, 5601, "grimoirelab")

    assert not cancel.is_set()
