"""Centralized timeout configuration for decoder server operations.

All supervisor and server timing values live here so they can be tuned in
one place. Per-session overrides come from ServerConfig / ClientConfig.
"""


class ServerTimeouts:
    """Centralized timeout configuration for decoder server operations.

    All values are in seconds unless otherwise noted.

    Groups:
        READY_*: Waiting for a spawned server to accept connections
        SIGINT_* / SIGTERM_* / SIGKILL_*: Shutdown escalation
        SERVER_*: Server-side timeouts
    """

    # =========================================================================
    # Server Ready Wait
    # =========================================================================

    READY_WAIT_DEFAULT: float = 30.0
    """Default upper bound for a spawned server to become responsive.

    The decoder server only has to bind a socket, so this is generous. A
    server that never binds is terminated and reported as a start failure
    instead of blocking the caller forever.
    """

    READY_CHECK_INTERVAL: float = 0.5
    """Interval between liveness probes while waiting for the server."""

    # =========================================================================
    # Shutdown Escalation
    # =========================================================================

    SIGINT_WAIT: float = 5.0
    """Time to wait for the server to exit after SIGINT.

    SIGINT is the first signal sent so the server can finish the request in
    flight and close its listening socket.
    """

    SIGTERM_WAIT: float = 3.0
    """Time to wait after SIGTERM before escalating to SIGKILL."""

    SIGKILL_WAIT: float = 2.5
    """Time to wait after SIGKILL for the OS to reap the process."""

    # =========================================================================
    # Server-Side Timeouts
    # =========================================================================

    SERVER_POLL: float = 0.5
    """Poll interval of the server loop while checking for shutdown."""

    SERVER_REQUEST: float = 30.0
    """Socket timeout for reading a request from a connected client."""

    STDERR_TAIL_BYTES: int = 4096
    """Bytes of server stderr kept for start failure reports."""
