"""Loopback networking helpers: port allocation, liveness probes, connections."""

import contextlib
import logging
import socket
from collections.abc import Iterator
from contextlib import contextmanager

from zxing_bridge.domain.config import LOOPBACK_HOST
from zxing_bridge.domain.value_objects import Endpoint

logger = logging.getLogger(__name__)


def find_available_port(host: str = LOOPBACK_HOST) -> int:
    """Ask the OS for a free port by binding port 0 and releasing it.

    The port is not reserved: another process may take it between this call
    and the decoder server binding it.

    Returns:
        A port number that was free at the time of the call

    Raises:
        OSError: If the socket cannot be created or bound
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        sock.listen(1)
        return sock.getsockname()[1]


def allocate_port(pinned_port: int | None = None) -> int:
    """Return the pinned port if configured, otherwise a free ephemeral port."""
    if pinned_port is not None:
        return pinned_port
    port = find_available_port()
    logger.debug(f"Allocated free port {port}")
    return port


def _as_endpoint(target: "Endpoint | int") -> Endpoint:
    return target if isinstance(target, Endpoint) else Endpoint(port=target)


def is_responsive(target: "Endpoint | int", timeout: float | None = None) -> bool:
    """Check whether something accepts TCP connections on the endpoint.

    Args:
        target: Endpoint or bare port on the loopback host
        timeout: Connect timeout in seconds (None = OS default)

    Returns:
        True if a connection was accepted, False if it was refused or timed out

    Raises:
        OSError: For any other connection failure (e.g. host unreachable)
    """
    endpoint = _as_endpoint(target)
    try:
        sock = socket.create_connection(endpoint.address, timeout=timeout)
    except ConnectionRefusedError:
        logger.debug(f"Probe {endpoint}: connection refused")
        return False
    except TimeoutError:
        logger.debug(f"Probe {endpoint}: timed out")
        return False
    sock.close()
    return True


@contextmanager
def server_connection(
    endpoint: Endpoint,
    timeout: float | None = None,
) -> Iterator[socket.socket]:
    """Context manager for a single request connection to the decoder server.

    Args:
        endpoint: Server endpoint
        timeout: Socket operation timeout in seconds (None = block)

    Yields:
        Connected socket ready for communication.

    Raises:
        ConnectionRefusedError: If nothing is listening on the endpoint.
        TimeoutError: If the connection times out.
        OSError: For other socket-related errors.
    """
    sock = socket.create_connection(endpoint.address, timeout=timeout)
    try:
        yield sock
    finally:
        with contextlib.suppress(OSError):
            sock.close()
