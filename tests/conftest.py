"""Pytest configuration and shared fixtures."""

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from tests.fixtures import FAKE_SERVER_SCRIPT, TextFileBackend
from zxing_bridge.core.session import reset_default_session
from zxing_bridge.domain.config import (
    LOG_LEVEL_ENV,
    PORT_ENV,
    SERVER_COMMAND_ENV,
    BridgeConfig,
    ClientConfig,
    ServerConfig,
)

# ============================================================================
# Environment Isolation
# ============================================================================
# Every test gets its own config home and working directory so a developer's
# ~/.config/zxing-bridge/config.toml or ZXING_PORT never leaks into results.


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point config lookups at an empty temp dir and clear override env vars."""
    config_home = tmp_path / "xdg-config"
    config_home.mkdir()
    workdir = tmp_path / "work"
    workdir.mkdir()

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    for name in (PORT_ENV, SERVER_COMMAND_ENV, LOG_LEVEL_ENV):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(workdir)

    yield

    reset_default_session()


# ============================================================================
# Decoder Server Helpers
# ============================================================================


@pytest.fixture
def fake_server_command() -> list[str]:
    """Command that runs the text-file decoder server (port appended later)."""
    return [sys.executable, str(FAKE_SERVER_SCRIPT)]


@pytest.fixture
def text_backend() -> TextFileBackend:
    """In-process text-file decoding backend."""
    return TextFileBackend()


@pytest.fixture
def fake_server_config(fake_server_command: list[str]) -> Callable[..., BridgeConfig]:
    """Factory for configs that start the text-file decoder server."""

    def _make(port: int | None = None, startup_timeout: float = 15.0) -> BridgeConfig:
        return BridgeConfig(
            server=ServerConfig(
                port=port,
                command=fake_server_command,
                startup_timeout=startup_timeout,
                poll_interval=0.05,
            ),
            client=ClientConfig(rpc_timeout=10.0, probe_timeout=1.0),
        )

    return _make


@pytest.fixture
def image_file(tmp_path: Path) -> Callable[..., Path]:
    """Factory for fake "images" holding one barcode per line."""

    def _make(*barcodes: str, name: str = "image.txt") -> Path:
        path = tmp_path / name
        path.write_text("".join(f"{code}\n" for code in barcodes), encoding="utf-8")
        return path

    return _make
