"""Port interfaces for decoder server supervision."""

from typing import Protocol

from zxing_bridge.domain.value_objects import Endpoint


class ServerHandle(Protocol):
    """Protocol for a handle on a running decoder server.

    A handle is owned when this process spawned the server, and reused when
    a server was already listening on the port.
    """

    endpoint: Endpoint

    @property
    def owned(self) -> bool:
        """True if this process started the server and must stop it."""
        ...

    @property
    def pid(self) -> int | None:
        """PID of an owned server, None for a reused one."""
        ...

    def is_alive(self) -> bool:
        """True while an owned server process has not exited."""
        ...

    def terminate(self) -> bool:
        """Stop an owned server; a no-op for reused servers.

        Returns:
            True if the server is known to be stopped (or was never owned)
        """
        ...


class ServerManager(Protocol):
    """Protocol for starting and stopping the decoder server.

    This protocol defines the interface the session uses to get a responsive
    decoder server on a port, and to release it again.
    """

    def ensure_server(self, port: int) -> ServerHandle:
        """Ensure a responsive decoder server listens on ``port``.

        Returns:
            Handle on the server (owned or reused)

        Raises:
            ServerStartError: If a spawned server never became responsive
            OSError: If the server command cannot be launched
        """
        ...

    def is_responsive(self, endpoint: Endpoint) -> bool:
        """Check whether the endpoint currently accepts connections."""
        ...

    def stop(self) -> bool:
        """Release the current server handle.

        Returns:
            True if the server is stopped (or was not owned)
        """
        ...
