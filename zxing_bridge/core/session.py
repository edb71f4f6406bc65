"""Decoder session: lazy connection, recovery policy, input normalization.

A DecoderSession owns at most one client handle and the decoder server
behind it. It connects on first use and, when a call opts in with
``retry_once``, replaces a dead server before (or after) the call. Session
creation and replacement are serialized by a lock.
"""

from __future__ import annotations

import io
import logging
import os
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from zxing_bridge.adapters.rpc.client import RemoteDecoderClient
from zxing_bridge.adapters.rpc.network import allocate_port
from zxing_bridge.adapters.rpc.supervisor import ServerSupervisor
from zxing_bridge.domain.config import BridgeConfig
from zxing_bridge.domain.exceptions import LostConnectionError
from zxing_bridge.domain.value_objects import Endpoint

if TYPE_CHECKING:
    from zxing_bridge.ports.decoder import RemoteDecoder
    from zxing_bridge.ports.server import ServerHandle, ServerManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

PathInput = str | os.PathLike


def normalize_path(file: PathInput) -> str:
    """Reduce a path-like input to a plain path string.

    Accepts strings, ``os.PathLike`` objects, objects exposing a ``path``
    attribute (e.g. ``os.DirEntry``) and open file objects (their ``name``).

    Raises:
        TypeError: If no path can be derived from the input
    """
    if isinstance(file, str):
        return file
    path = getattr(file, "path", None)
    if path is None and isinstance(file, io.IOBase):
        path = getattr(file, "name", None)
    if path is None:
        path = file
    if isinstance(path, (str, bytes, os.PathLike)):
        return os.fsdecode(path)
    raise TypeError(f"Expected a path or path-like object, got {type(file).__name__}")


class DecoderSession:
    """Session with a decoder server.

    Example:
        with DecoderSession() as session:
            session.decode("label.png")
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        supervisor: ServerManager | None = None,
        client_factory: Callable[[Endpoint], RemoteDecoder] | None = None,
        register_atexit: bool = False,
    ):
        """Initialize the session. Nothing is started until the first call.

        Args:
            config: Configuration (default: built-in defaults)
            supervisor: Server manager (default: a ServerSupervisor built
                from ``config``)
            client_factory: Builds a client handle for an endpoint
                (default: RemoteDecoderClient)
            register_atexit: Stop owned servers at interpreter exit
        """
        self.config = config or BridgeConfig.default()
        server_config = self.config.server
        self.supervisor = supervisor or ServerSupervisor(
            command=server_config.command,
            pinned_port=server_config.port,
            startup_timeout=server_config.startup_timeout,
            poll_interval=server_config.poll_interval,
            probe_timeout=self.config.client.probe_timeout,
            register_atexit=register_atexit,
            log_level=server_config.log_level,
        )
        self._client_factory = client_factory or self._default_client
        self._lock = threading.RLock()

        self.client: RemoteDecoder | None = None
        self.endpoint: Endpoint | None = None
        self.server: ServerHandle | None = None

    def _default_client(self, endpoint: Endpoint) -> RemoteDecoder:
        return RemoteDecoderClient(endpoint, timeout=self.config.client.rpc_timeout)

    @property
    def port(self) -> int | None:
        return self.endpoint.port if self.endpoint else None

    def connect(self) -> RemoteDecoder:
        """Return the client handle, starting the decoder server if needed."""
        with self._lock:
            if self.client is None:
                self._open()
            return self.client

    def _open(self) -> None:
        port = allocate_port(self.config.server.port)
        server = self.supervisor.ensure_server(port)
        self.server = server
        self.endpoint = server.endpoint
        self.client = self._client_factory(server.endpoint)
        logger.debug(f"Session connected to {server.endpoint}")

    def _release(self) -> None:
        self.client = None
        self.endpoint = None
        self.server = None
        self.supervisor.stop()

    def reconnect(self) -> RemoteDecoder:
        """Drop the current client and server and build fresh ones."""
        with self._lock:
            logger.info(f"Rebuilding decoder session (was {self.endpoint})")
            self._release()
            self._open()
            return self.client

    def is_responsive(self) -> bool:
        """Check whether the current endpoint accepts connections."""
        endpoint = self.endpoint
        if endpoint is None:
            return False
        return self.supervisor.is_responsive(endpoint)

    def _recover(self, stale: RemoteDecoder) -> RemoteDecoder:
        """Rebuild unless another caller already replaced ``stale``."""
        with self._lock:
            if self.client is not stale and self.client is not None:
                return self.client
            return self.reconnect()

    def _call(
        self,
        operation: Callable[[RemoteDecoder, str], T],
        file: PathInput,
        retry_once: bool,
    ) -> T:
        path = normalize_path(file)

        rebuilt = False
        with self._lock:
            client = self.connect()
            if retry_once and not self.is_responsive():
                client = self._recover(client)
                rebuilt = True

        try:
            return operation(client, path)
        except LostConnectionError:
            if not retry_once or rebuilt:
                raise
            logger.info("Lost connection to decoder server, retrying once")
            client = self._recover(client)
            return operation(client, path)

    def decode(self, file: PathInput, retry_once: bool = False) -> str | None:
        """Decode the first barcode in an image; None if there is none."""
        return self._call(lambda c, p: c.decode(p), file, retry_once)

    def decode_strict(self, file: PathInput, retry_once: bool = False) -> str:
        """Like decode, but raises UndecodableError instead of returning None."""
        return self._call(lambda c, p: c.decode_strict(p), file, retry_once)

    def decode_all(self, file: PathInput, retry_once: bool = False) -> list[str] | None:
        """Decode every barcode in an image; None if there are none."""
        return self._call(lambda c, p: c.decode_all(p), file, retry_once)

    def decode_all_strict(self, file: PathInput, retry_once: bool = False) -> list[str]:
        """Like decode_all, but raises UndecodableError instead of returning None."""
        return self._call(lambda c, p: c.decode_all_strict(p), file, retry_once)

    def qrcode_decode(self, file: PathInput, retry_once: bool = False) -> str | None:
        """Decode the first QR code in an image; None if there is none."""
        return self._call(lambda c, p: c.qrcode_decode(p), file, retry_once)

    def close(self) -> None:
        """Stop the decoder server if this session started it."""
        with self._lock:
            self._release()

    def __enter__(self) -> DecoderSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


_default_session: DecoderSession | None = None
_default_lock = threading.Lock()


def get_default_session() -> DecoderSession:
    """Return the process-wide session, creating it on first use.

    Its configuration comes from the TOML cascade and the environment, and
    a server it starts is stopped at interpreter exit.
    """
    global _default_session
    with _default_lock:
        if _default_session is None:
            from zxing_bridge.adapters.config.toml_config_provider import TomlConfigProvider

            config = TomlConfigProvider().load()
            _default_session = DecoderSession(config=config, register_atexit=True)
        return _default_session


def reset_default_session() -> None:
    """Close and forget the process-wide session."""
    global _default_session
    with _default_lock:
        session, _default_session = _default_session, None
    if session is not None:
        session.close()
