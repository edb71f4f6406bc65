"""Unit tests for decoder server timeout constants."""

from zxing_bridge.adapters.rpc.timeouts import ServerTimeouts


class TestServerTimeoutsValues:
    """Tests for ServerTimeouts configuration values."""

    def test_ready_wait_default_timeout_is_positive(self) -> None:
        assert ServerTimeouts.READY_WAIT_DEFAULT > 0

    def test_ready_check_interval_less_than_ready_wait(self) -> None:
        """Check interval should be less than total wait time."""
        assert 0 < ServerTimeouts.READY_CHECK_INTERVAL < ServerTimeouts.READY_WAIT_DEFAULT

    def test_shutdown_escalation_waits_are_positive(self) -> None:
        for wait in (
            ServerTimeouts.SIGINT_WAIT,
            ServerTimeouts.SIGTERM_WAIT,
            ServerTimeouts.SIGKILL_WAIT,
        ):
            assert wait > 0

    def test_server_poll_is_shorter_than_request_timeout(self) -> None:
        """The accept loop must notice shutdown before a request times out."""
        assert ServerTimeouts.SERVER_POLL < ServerTimeouts.SERVER_REQUEST

    def test_defaults_match_server_config(self) -> None:
        from zxing_bridge.domain.config import ServerConfig

        config = ServerConfig()
        assert config.startup_timeout == ServerTimeouts.READY_WAIT_DEFAULT
        assert config.poll_interval == ServerTimeouts.READY_CHECK_INTERVAL
