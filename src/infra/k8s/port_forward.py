"""Port-forward session management for Kubernetes services.

Starts, tracks and terminates long-lived ``kubectl port-forward`` processes
that expose cluster services locally. Sessions live in an explicit
in-memory registry keyed by local port; nothing is discovered by scanning
the process table.
"""

from __future__ import annotations

import signal
import socket
import subprocess
import threading
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import FrameType
from typing import Any

from loguru import logger

from src.infra.constants import DEFAULT_CONSTANTS
from src.utils.console_like import ConsoleLike


class PortForwardError(Exception):
    """Error during port forwarding setup."""


@dataclass
class Session:
    """A tracked port-forward process."""

    label: str
    target: str
    namespace: str
    local_port: int
    remote_port: int
    process: subprocess.Popen[str]
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def alive(self) -> bool:
        return self.process.poll() is None

    @property
    def url(self) -> str:
        return f"http://localhost:{self.local_port}"


def _is_port_in_use(port: int, host: str = "localhost") -> bool:
    """Check if a local port is already in use.

    Args:
        port: Port number to check
        host: Host to check on (default: localhost)

    Returns:
        True if port is in use, False otherwise
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
            return False
        except OSError:
            return True


class SessionManager:
    """Owns every port-forward session started by this process.

    At most one session exists per local port: opening a session on a
    port that is already tracked terminates the old one first.
    ``close_all()`` is best-effort and never raises.
    """

    def __init__(
        self,
        console: ConsoleLike | None = None,
        *,
        wait_time: float = DEFAULT_CONSTANTS.PORT_FORWARD_WAIT_SECONDS,
        stop_timeout: float = DEFAULT_CONSTANTS.PORT_FORWARD_STOP_TIMEOUT_SECONDS,
        popen: Callable[..., subprocess.Popen[str]] = subprocess.Popen,
        port_in_use: Callable[[int], bool] = _is_port_in_use,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.console = console
        self.wait_time = wait_time
        self.stop_timeout = stop_timeout
        self._popen = popen
        self._port_in_use = port_in_use
        self._sleep = sleep
        self._sessions: dict[int, Session] = {}

    # =========================================================================
    # Registry
    # =========================================================================

    @property
    def sessions(self) -> list[Session]:
        """Tracked sessions ordered by local port."""
        return [self._sessions[port] for port in sorted(self._sessions)]

    def get(self, local_port: int) -> Session | None:
        return self._sessions.get(local_port)

    def __len__(self) -> int:
        return len(self._sessions)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open(
        self,
        label: str,
        target: str,
        local_port: int,
        remote_port: int,
        namespace: str,
    ) -> Session:
        """Start a port-forward, replacing any session on the same local port.

        Args:
            label: Human-readable name (e.g., "Kibiter Dashboard")
            target: Resource reference (e.g., "service/grimoirelab-kibiter")
            local_port: Local port to listen on
            remote_port: Port on the target resource
            namespace: Kubernetes namespace of the target

        Returns:
            The tracked Session

        Raises:
            PortForwardError: If the port is held by an untracked process or
                the port-forward exits during start-up
        """
        if local_port in self._sessions:
            logger.debug(f"Replacing existing session on port {local_port}")
            self.close(local_port)

        if self._port_in_use(local_port):
            raise PortForwardError(
                f"Port {local_port} is already in use by a process this "
                "session manager does not own."
            )

        cmd = [
            "kubectl",
            "port-forward",
            "-n",
            namespace,
            target,
            f"{local_port}:{remote_port}",
        ]
        if self.console:
            self.console.print(
                f"[dim]Starting port-forward: {target} {local_port}:{remote_port}[/dim]"
            )

        process = self._popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
        try:
            session = Session(
                label=label,
                target=target,
                namespace=namespace,
                local_port=local_port,
                remote_port=remote_port,
                process=process,
            )
            # Registered before the grace wait so an interrupt still reaches it
            self._sessions[local_port] = session
        except BaseException:
            process.kill()
            raise

        self._sleep(self.wait_time)

        if process.poll() is not None:
            del self._sessions[local_port]
            stderr = ""
            if process.stderr is not None:
                stderr = process.stderr.read() or ""
            raise PortForwardError(
                f"Port forward for {label} failed to start: {stderr.strip()}"
            )

        logger.info(f"Port-forward active: localhost:{local_port} -> {target}:{remote_port}")
        return session

    def close(self, local_port: int) -> None:
        """Stop and forget the session on a local port (no-op if untracked)."""
        session = self._sessions.pop(local_port, None)
        if session is None:
            return
        self._terminate(session)

    def close_all(self) -> None:
        """Stop every tracked session. Never raises."""
        for port in list(self._sessions):
            try:
                self.close(port)
            except Exception as e:  # noqa: BLE001
                logger.warning(f"Could not stop port-forward on {port}: {e}")
                self._sessions.pop(port, None)

    def _terminate(self, session: Session) -> None:
        process = session.process
        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=self.stop_timeout)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        logger.info(f"Port-forward stopped: {session.label} (port {session.local_port})")

    # =========================================================================
    # Process lifetime
    # =========================================================================

    def wait(self, poll_interval: float = 1.0) -> None:
        """Block while at least one session is alive.

        Dead sessions are dropped from the registry as they are noticed.
        """
        while self._sessions:
            for port, session in list(self._sessions.items()):
                if not session.alive:
                    logger.warning(
                        f"Port-forward for {session.label} exited "
                        f"(code {session.process.returncode})"
                    )
                    del self._sessions[port]
            if self._sessions:
                self._sleep(poll_interval)

    @contextmanager
    def interrupt_guard(
        self, cancel: threading.Event | None = None
    ) -> Generator[SessionManager]:
        """Close every session on SIGINT/SIGTERM and on exit.

        The signal handler sets ``cancel`` (when given), closes sessions and
        then raises KeyboardInterrupt so callers unwind normally.
        """
        previous: dict[int, Any] = {}

        def _handler(signum: int, frame: FrameType | None) -> None:
            logger.warning(f"Received signal {signum}, stopping port-forwards")
            if cancel is not None:
                cancel.set()
            self.close_all()
            raise KeyboardInterrupt

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                previous[signum] = signal.signal(signum, _handler)
            except ValueError:
                # Not the main thread; rely on the finally block only
                pass

        try:
            yield self
        finally:
            self.close_all()
            for signum, handler in previous.items():
                signal.signal(signum, handler)
