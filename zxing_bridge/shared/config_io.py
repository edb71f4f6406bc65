"""Configuration I/O utilities for reading and writing TOML config files.

This module handles serialization/deserialization of BridgeConfig to/from
TOML format and applies environment variable overrides.
"""

import os
import platform
import shlex
import tomllib
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

import tomli_w

from zxing_bridge.domain.config import (
    PORT_ENV,
    SERVER_COMMAND_ENV,
    BridgeConfig,
)


def get_global_config_path() -> Path:
    """Get the path to the global config file.

    The location is platform-dependent:
    - Linux/macOS: $XDG_CONFIG_HOME/zxing-bridge/config.toml or
      ~/.config/zxing-bridge/config.toml
    - Windows: %APPDATA%/zxing-bridge/config.toml

    Returns:
        Path to the global config file (may not exist)
    """
    if platform.system() == "Windows":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "zxing-bridge" / "config.toml"
        return Path.home() / ".config" / "zxing-bridge" / "config.toml"
    xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg_config:
        return Path(xdg_config) / "zxing-bridge" / "config.toml"
    return Path.home() / ".config" / "zxing-bridge" / "config.toml"


def load_config_data(path: Path) -> dict[str, Any]:
    """Load raw TOML data from a config file.

    Args:
        path: Path to config.toml file

    Returns:
        Dictionary with parsed TOML data

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in config file: {e}") from e


def parse_port(value: str) -> int:
    """Parse a port number from an environment variable value.

    Raises:
        ValueError: If the value is not an integer in 1-65535
    """
    try:
        port = int(value.strip())
    except ValueError as e:
        raise ValueError(f"{PORT_ENV} must be an integer, got {value!r}") from e
    if not 1 <= port <= 65535:
        raise ValueError(f"{PORT_ENV} must be between 1 and 65535, got {port}")
    return port


def apply_env_overrides(
    config: BridgeConfig, environ: Mapping[str, str] | None = None
) -> BridgeConfig:
    """Apply environment variable overrides on top of file configuration.

    - ZXING_PORT pins the decoder server port
    - ZXING_BRIDGE_SERVER_COMMAND replaces the server command (shell syntax)

    Args:
        config: Configuration loaded from files/defaults
        environ: Environment mapping (default: os.environ)

    Returns:
        Config with overrides applied

    Raises:
        ValueError: If an override value is invalid
    """
    environ = os.environ if environ is None else environ
    server = config.server

    port_value = environ.get(PORT_ENV, "").strip()
    if port_value:
        server = replace(server, port=parse_port(port_value))

    command_value = environ.get(SERVER_COMMAND_ENV, "").strip()
    if command_value:
        server = replace(server, command=shlex.split(command_value))

    if server is config.server:
        return config
    return replace(config, server=server)


def config_to_data(config: BridgeConfig) -> dict[str, Any]:
    """Convert a BridgeConfig to a TOML-serializable dictionary.

    None values are omitted since TOML has no null.
    """
    server = {
        "port": config.server.port,
        "command": config.server.command,
        "startup_timeout": config.server.startup_timeout,
        "poll_interval": config.server.poll_interval,
        "log_level": config.server.log_level,
    }
    client = {
        "rpc_timeout": config.client.rpc_timeout,
        "probe_timeout": config.client.probe_timeout,
    }
    return {
        "server": {k: v for k, v in server.items() if v is not None},
        "client": {k: v for k, v in client.items() if v is not None},
    }


def save_config(config: BridgeConfig, path: Path) -> None:
    """Save configuration to a TOML file.

    Args:
        config: BridgeConfig to save
        path: Destination path for config.toml
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(config_to_data(config), f)


def create_default_config_file(path: Path) -> None:
    """Create a default config.toml file with comments.

    Args:
        path: Destination path for config.toml
    """
    template = """\
# zxing-bridge configuration
# Created by: zxing-bridge config init

[server]
# Pin the decoder server port (same as ZXING_PORT). A server already
# listening there is reused. Leave unset to pick a free port.
# port = 9999

# Decoder server command; the port is appended as its only argument.
# Empty uses the bundled reference server (zxing-cpp).
command = []

# Seconds to wait for a spawned server to accept connections
startup_timeout = 30.0

# Seconds between liveness probes while the server starts
poll_interval = 0.5

# Log level of the bundled reference server
log_level = "WARNING"

[client]
# Socket timeout for decode calls in seconds (unset = wait forever)
# rpc_timeout = 60.0

# Connect timeout for liveness probes in seconds (unset = OS default)
# probe_timeout = 2.0
"""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write(template)
