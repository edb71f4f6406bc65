"""Decoder server supervision (spawn, readiness, teardown).

Spawns the decoder server on a chosen port when nothing responsive is there
yet, blocks until it accepts connections, and hands back a ServerProcess
handle whose release stops the server again.
"""

import atexit
import contextlib
import logging
import os
import signal
import subprocess
import sys
import tempfile
import time
from collections.abc import Callable
from typing import IO

from zxing_bridge.adapters.rpc.network import is_responsive
from zxing_bridge.adapters.rpc.timeouts import ServerTimeouts
from zxing_bridge.domain.config import LOG_LEVEL_ENV
from zxing_bridge.domain.exceptions import ServerStartError
from zxing_bridge.domain.value_objects import Endpoint

logger = logging.getLogger(__name__)

SERVER_MODULE = "zxing_bridge.adapters.rpc.server"


def default_server_command() -> list[str]:
    """Command that runs the bundled reference decoder server."""
    return [sys.executable, "-m", SERVER_MODULE]


class ServerProcess:
    """Handle on a decoder server.

    A handle either owns the child process it spawned, or wraps a server that
    was already listening (``owned`` is False) and is never signalled.
    Releasing an owned handle sends SIGINT, then escalates to SIGTERM and
    SIGKILL if the server does not exit in time. Release is idempotent.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        process: subprocess.Popen | None = None,
        command: list[str] | None = None,
        stderr_file: IO[bytes] | None = None,
    ):
        self.endpoint = endpoint
        self.process = process
        self.command = command or []
        self._stderr_file = stderr_file
        self._released = False

    @property
    def owned(self) -> bool:
        return self.process is not None

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process is not None else None

    def is_alive(self) -> bool:
        """True while the owned child has not exited.

        A reused server is reported alive; use the liveness probe for it.
        """
        if self.process is None:
            return True
        return self.process.poll() is None

    def read_stderr_tail(self, limit: int = ServerTimeouts.STDERR_TAIL_BYTES) -> str:
        """Return the last ``limit`` bytes the server wrote to stderr."""
        if self._stderr_file is None or self._stderr_file.closed:
            return ""
        try:
            self._stderr_file.flush()
            size = self._stderr_file.seek(0, os.SEEK_END)
            self._stderr_file.seek(max(0, size - limit))
            return self._stderr_file.read().decode("utf-8", errors="replace").strip()
        except OSError:
            logger.debug("Failed to read decoder server stderr")
            return ""

    def _signal_and_wait(self, send: Callable[[], None], timeout: float) -> bool:
        """Deliver a signal via ``send`` and wait up to ``timeout`` seconds.

        Returns:
            True if the process exited
        """
        assert self.process is not None
        try:
            send()
        except ProcessLookupError:
            return True
        try:
            self.process.wait(timeout=timeout)
            return True
        except subprocess.TimeoutExpired:
            return False

    def terminate(self) -> bool:
        """Stop an owned server; a no-op for reused servers.

        Returns:
            True if the server is known to be stopped (or was never owned)
        """
        if self._released:
            return True
        self._released = True
        atexit.unregister(self.terminate)

        stopped = True
        if self.process is not None and self.process.poll() is None:
            logger.info(f"Stopping decoder server (PID {self.process.pid}) on {self.endpoint}")
            process = self.process
            interrupt = signal.SIGINT if os.name != "nt" else signal.SIGTERM
            stopped = (
                self._signal_and_wait(
                    lambda: process.send_signal(interrupt), ServerTimeouts.SIGINT_WAIT
                )
                or self._signal_and_wait(process.terminate, ServerTimeouts.SIGTERM_WAIT)
                or self._signal_and_wait(process.kill, ServerTimeouts.SIGKILL_WAIT)
            )
            if not stopped:
                logger.error(f"Decoder server (PID {self.process.pid}) survived SIGKILL")

        if self._stderr_file is not None:
            with contextlib.suppress(OSError):
                self._stderr_file.close()
        return stopped

    close = terminate

    def __enter__(self) -> "ServerProcess":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.terminate()

    def __repr__(self) -> str:
        return f"ServerProcess(endpoint={self.endpoint}, pid={self.pid}, owned={self.owned})"


class ServerSupervisor:
    """Starts decoder servers and waits for them to become responsive."""

    def __init__(
        self,
        command: list[str] | None = None,
        pinned_port: int | None = None,
        startup_timeout: float = ServerTimeouts.READY_WAIT_DEFAULT,
        poll_interval: float = ServerTimeouts.READY_CHECK_INTERVAL,
        probe_timeout: float | None = None,
        register_atexit: bool = True,
        log_level: str | None = None,
    ):
        """Initialize the supervisor.

        Args:
            command: Decoder server command; the port is appended as its
                only argument (default: the bundled reference server)
            pinned_port: Externally pinned port (ZXING_PORT); a responsive
                server on it is reused instead of spawning a new one
            startup_timeout: Max seconds to wait for a spawned server
            poll_interval: Seconds between liveness probes during startup
            probe_timeout: Connect timeout for liveness probes
            register_atexit: Stop owned servers when the interpreter exits
            log_level: Log level exported to the spawned server
        """
        self.command = list(command) if command else default_server_command()
        self.pinned_port = pinned_port
        self.startup_timeout = startup_timeout
        self.poll_interval = poll_interval
        self.probe_timeout = probe_timeout
        self.register_atexit = register_atexit
        self.log_level = log_level
        self.current: ServerProcess | None = None

    def build_command(self, port: int) -> list[str]:
        return [*self.command, str(port)]

    def is_responsive(self, endpoint: Endpoint) -> bool:
        return is_responsive(endpoint, timeout=self.probe_timeout)

    def ensure_server(self, port: int) -> ServerProcess:
        """Make sure a responsive decoder server listens on ``port``.

        Args:
            port: Port the server must listen on

        Returns:
            Handle on the (possibly reused) server

        Raises:
            ServerStartError: If a spawned server never became responsive
            OSError: If the decoder command cannot be launched at all
        """
        endpoint = Endpoint(port=port)

        current = self.current
        if (
            current is not None
            and current.endpoint == endpoint
            and current.is_alive()
            and self.is_responsive(endpoint)
        ):
            return current
        if current is not None:
            self.stop()

        if self.pinned_port == port and self.is_responsive(endpoint):
            logger.info(f"Reusing decoder server already listening on {endpoint}")
            self.current = ServerProcess(endpoint)
            return self.current

        handle = self._start(endpoint)
        self.current = handle
        return handle

    def stop(self) -> bool:
        """Release the current server handle, if any."""
        current, self.current = self.current, None
        if current is None:
            return True
        return current.terminate()

    def _spawn_process(self, cmd: list[str], stderr_file: IO[bytes]) -> subprocess.Popen:
        """Spawn the decoder server as a child process.

        Raises:
            OSError: If the executable is missing or cannot be launched
        """
        env = os.environ.copy()
        if self.log_level:
            env.setdefault(LOG_LEVEL_ENV, self.log_level)

        return subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=stderr_file,
            start_new_session=True,  # Ctrl-C in the host must not reach the server
            env=env,
        )

    def _start(self, endpoint: Endpoint) -> ServerProcess:
        cmd = self.build_command(endpoint.port)
        logger.info(f"Starting decoder server on {endpoint}: {' '.join(cmd)}")

        stderr_file = tempfile.TemporaryFile()
        try:
            process = self._spawn_process(cmd, stderr_file)
        except OSError:
            stderr_file.close()
            raise

        handle = ServerProcess(endpoint, process=process, command=cmd, stderr_file=stderr_file)
        try:
            self._wait_for_ready(handle)
        except BaseException:
            handle.terminate()
            raise

        if self.register_atexit:
            atexit.register(handle.terminate)
        return handle

    def _wait_for_ready(self, handle: ServerProcess) -> None:
        """Poll the endpoint until the server accepts connections.

        Raises:
            ServerStartError: If the process exits or the deadline passes
        """
        deadline = time.monotonic() + self.startup_timeout
        started = time.monotonic()

        while True:
            if self.is_responsive(handle.endpoint):
                logger.info(
                    f"Decoder server ready on {handle.endpoint} "
                    f"(PID {handle.pid}, took {time.monotonic() - started:.1f}s)"
                )
                return

            exit_code = handle.process.poll() if handle.process is not None else None
            if exit_code is not None:
                message = f"Decoder server exited during startup (exit code: {exit_code})"
                stderr_output = handle.read_stderr_tail()
                if stderr_output:
                    message += f"\nStderr: {stderr_output}"
                raise ServerStartError(
                    message,
                    port=handle.endpoint.port,
                    exit_code=exit_code,
                    hint="Check that the decoder server command works when run by hand",
                )

            if time.monotonic() >= deadline:
                raise ServerStartError(
                    f"Decoder server on {handle.endpoint} not responding after "
                    f"{self.startup_timeout:.1f}s. Process was terminated.",
                    port=handle.endpoint.port,
                    hint="Increase server.startup_timeout or check the decoder server logs",
                )

            time.sleep(self.poll_interval)
