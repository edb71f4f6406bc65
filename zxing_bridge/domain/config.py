"""Config domain models for zxing-bridge.

Configuration is read from config.toml files and the environment and
describes how the decoder server is located, started and called. This module
defines the domain models that represent validated configuration state.
"""

import shlex
from dataclasses import dataclass, field

LOOPBACK_HOST = "127.0.0.1"

PORT_ENV = "ZXING_PORT"
SERVER_COMMAND_ENV = "ZXING_BRIDGE_SERVER_COMMAND"
LOG_LEVEL_ENV = "ZXING_BRIDGE_LOG_LEVEL"


def _validate_port(port: int | None, name: str = "port") -> None:
    if port is not None and not 1 <= port <= 65535:
        raise ValueError(f"{name} must be between 1 and 65535, got {port}")


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for locating and starting the decoder server.

    Attributes:
        port: Pinned port (ZXING_PORT). None means allocate a free port.
        command: Decoder server command; the port is appended as its only
                 argument. Empty means the bundled reference server. A
                 string is shell-split, like ZXING_BRIDGE_SERVER_COMMAND.
        startup_timeout: Max seconds to wait for a spawned server to accept
                         connections.
        poll_interval: Seconds between liveness probes during startup.
        log_level: Log level passed to the bundled reference server.

    Raises:
        ValueError: If the port is out of range, the command is not a string
            or list of strings, or the timings are not positive.
    """

    port: int | None = None
    command: list[str] = field(default_factory=list)
    startup_timeout: float = 30.0
    poll_interval: float = 0.5
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        """Validate server config after initialization."""
        _validate_port(self.port)
        if isinstance(self.command, str):
            object.__setattr__(self, "command", shlex.split(self.command))
        if not isinstance(self.command, list) or not all(
            isinstance(part, str) for part in self.command
        ):
            raise ValueError(
                f"command must be a string or a list of strings, got {self.command!r}"
            )
        if self.startup_timeout <= 0:
            raise ValueError(
                f"startup_timeout must be positive, got {self.startup_timeout}"
            )
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.poll_interval > self.startup_timeout:
            raise ValueError(
                f"poll_interval ({self.poll_interval}) must not exceed "
                f"startup_timeout ({self.startup_timeout})"
            )


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for RPC calls against the decoder server.

    Attributes:
        rpc_timeout: Socket timeout in seconds for a decode call (None = block).
        probe_timeout: Socket timeout in seconds for liveness probes
                       (None = OS default).
    """

    rpc_timeout: float | None = None
    probe_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate client config after initialization."""
        for name in ("rpc_timeout", "probe_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")


@dataclass(frozen=True)
class BridgeConfig:
    """Complete zxing-bridge configuration.

    Attributes:
        server: Decoder server location and startup settings
        client: RPC call settings
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)

    @staticmethod
    def default() -> "BridgeConfig":
        """Create a config with all default values."""
        return BridgeConfig(server=ServerConfig(), client=ClientConfig())

    @staticmethod
    def from_partial(base: "BridgeConfig", data: dict) -> "BridgeConfig":
        """Overlay raw config sections onto an existing config.

        Only keys present in ``data`` replace the values of ``base``; each
        section is rebuilt so its validation runs again.

        Args:
            base: Config to start from
            data: Raw config dictionary (e.g. parsed TOML)

        Returns:
            New BridgeConfig with the overrides applied

        Raises:
            ValueError: If a section has unknown keys or invalid values.
        """
        server_data = data.get("server", {})
        client_data = data.get("client", {})
        try:
            server = ServerConfig(**{**base.server.__dict__, **server_data})
            client = ClientConfig(**{**base.client.__dict__, **client_data})
        except TypeError as e:
            raise ValueError(f"Unknown config key: {e}") from e
        return BridgeConfig(server=server, client=client)
