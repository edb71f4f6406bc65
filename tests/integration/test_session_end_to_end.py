"""Integration tests: sessions driving real decoder server processes.

These spawn the text-file decoder server (tests/fixtures) as a subprocess,
exactly the way a real decoder command is spawned.
"""

import os
import shlex
import signal
import subprocess
import sys
import time

import pytest

from zxing_bridge.adapters.rpc.client import RemoteDecoderClient
from zxing_bridge.adapters.rpc.network import find_available_port, is_responsive
from zxing_bridge.core.session import DecoderSession, get_default_session
from zxing_bridge.domain.config import BridgeConfig, ServerConfig
from zxing_bridge.domain.exceptions import (
    LostConnectionError,
    RemoteCallError,
    ServerStartError,
    UndecodableError,
)
from zxing_bridge.domain.value_objects import Endpoint

pytestmark = pytest.mark.slow


def kill_server(session: DecoderSession) -> None:
    """Kill the session's server behind its back."""
    process = session.server.process
    process.kill()
    process.wait(timeout=5)


@pytest.fixture
def session(fake_server_config):
    with DecoderSession(config=fake_server_config()) as session:
        yield session


class TestDecoding:
    """Decode operations end to end."""

    def test_decode(self, session, image_file) -> None:
        assert session.decode(image_file("hello")) == "hello"
        assert session.server.owned
        assert session.server.is_alive()

    def test_decode_variants(self, session, image_file) -> None:
        path = image_file("ean-4006381333931", "qr:https://example.com")

        assert session.decode_all(path) == ["ean-4006381333931", "https://example.com"]
        assert session.decode_all_strict(path) == ["ean-4006381333931", "https://example.com"]
        assert session.qrcode_decode(path) == "https://example.com"

    def test_undecodable(self, session, image_file) -> None:
        path = image_file()

        assert session.decode(path) is None
        assert session.decode_all(path) is None
        with pytest.raises(UndecodableError, match="Image not decodable"):
            session.decode_strict(path)
        with pytest.raises(UndecodableError):
            session.decode_all_strict(path)

    def test_missing_file(self, session, tmp_path) -> None:
        with pytest.raises(RemoteCallError) as exc_info:
            session.decode(tmp_path / "missing.png")
        assert exc_info.value.code == 400

    def test_open_file_object(self, session, image_file) -> None:
        path = image_file("from-handle")
        with path.open("rb") as f:
            assert session.decode(f) == "from-handle"

    def test_one_server_per_session(self, session, image_file) -> None:
        path = image_file("x")
        session.decode(path)
        pid = session.server.pid
        session.decode(path)
        session.decode_all(path)
        assert session.server.pid == pid


class TestRecovery:
    """retry_once against a server that died."""

    def test_dead_server_without_retry_raises(self, session, image_file) -> None:
        path = image_file("x")
        session.decode(path)
        kill_server(session)

        with pytest.raises(LostConnectionError):
            session.decode(path)

    def test_dead_server_with_retry_is_replaced(self, session, image_file) -> None:
        path = image_file("x")
        session.decode(path)
        old_pid = session.server.pid
        kill_server(session)

        assert session.decode(path, retry_once=True) == "x"
        assert session.server.pid != old_pid
        assert session.server.is_alive()


class TestLifetime:
    """Server release at session end."""

    def test_close_stops_server(self, fake_server_config, image_file) -> None:
        session = DecoderSession(config=fake_server_config())
        session.decode(image_file("x"))
        process = session.server.process
        endpoint = session.endpoint

        session.close()

        assert process.poll() is not None
        assert not is_responsive(endpoint, timeout=1.0)

    def test_default_session_is_shared(self, fake_server_command, image_file, monkeypatch) -> None:
        monkeypatch.setenv("ZXING_BRIDGE_SERVER_COMMAND", shlex.join(fake_server_command))
        import zxing_bridge

        path = image_file("shared")
        assert zxing_bridge.decode(path) == "shared"
        assert zxing_bridge.decode_all(path) == ["shared"]
        assert get_default_session().server.owned


class TestPinnedPort:
    """ZXING_PORT handling."""

    def test_existing_server_is_reused(
        self, fake_server_command, fake_server_config, image_file
    ) -> None:
        port = find_available_port()
        external = subprocess.Popen(
            [*fake_server_command, str(port)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        try:
            _wait_until_responsive(port)
            client = RemoteDecoderClient(Endpoint(port=port), timeout=5.0)
            external_pid = client.health()["pid"]

            with DecoderSession(config=fake_server_config(port=port)) as session:
                assert session.decode(image_file("pinned")) == "pinned"
                assert not session.server.owned
                assert session.port == port
                assert client.health()["pid"] == external_pid

            assert external.poll() is None
        finally:
            external.terminate()
            external.wait(timeout=5)

    def test_pinned_port_without_server_spawns(self, fake_server_config, image_file) -> None:
        port = find_available_port()
        with DecoderSession(config=fake_server_config(port=port)) as session:
            assert session.decode(image_file("x")) == "x"
            assert session.server.owned
            assert session.port == port


class TestStartFailures:
    """Start failures surface as errors instead of hangs."""

    def test_server_exits_during_startup(self, image_file) -> None:
        config = BridgeConfig(
            server=ServerConfig(
                command=[sys.executable, "-c", "import sys; sys.stderr.write('no decoder'); sys.exit(3)"],
                startup_timeout=10.0,
                poll_interval=0.05,
            )
        )
        with DecoderSession(config=config) as session:
            with pytest.raises(ServerStartError) as exc_info:
                session.decode(image_file("x"))

        assert exc_info.value.exit_code == 3
        assert "no decoder" in exc_info.value.message

    def test_server_never_listens(self, image_file) -> None:
        config = BridgeConfig(
            server=ServerConfig(
                command=[sys.executable, "-c", "import time; time.sleep(60)"],
                startup_timeout=1.0,
                poll_interval=0.05,
            )
        )
        with DecoderSession(config=config) as session:
            with pytest.raises(ServerStartError, match="not responding"):
                session.decode(image_file("x"))
            assert session.client is None

    def test_missing_executable(self, image_file) -> None:
        config = BridgeConfig(server=ServerConfig(command=["/nonexistent/zxing-decoder"]))
        with DecoderSession(config=config) as session:
            with pytest.raises(OSError):
                session.decode(image_file("x"))


@pytest.mark.skipif(os.name == "nt", reason="POSIX signals")
def test_server_shuts_down_on_sigint(fake_server_command) -> None:
    port = find_available_port()
    process = subprocess.Popen(
        [*fake_server_command, str(port)],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    try:
        _wait_until_responsive(port)
        process.send_signal(signal.SIGINT)
        assert process.wait(timeout=5) == 0
    finally:
        if process.poll() is None:
            process.kill()


def _wait_until_responsive(port: int, timeout: float = 15.0) -> None:
    deadline = time.monotonic() + timeout
    while not is_responsive(port, timeout=0.5):
        if time.monotonic() > deadline:
            pytest.fail(f"decoder server on port {port} never came up")
        time.sleep(0.05)
