"""Unit tests for config I/O utilities."""

import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest

from zxing_bridge.domain.config import BridgeConfig, ClientConfig, ServerConfig
from zxing_bridge.shared.config_io import (
    apply_env_overrides,
    config_to_data,
    create_default_config_file,
    get_global_config_path,
    load_config_data,
    parse_port,
    save_config,
)


class TestGlobalConfigPath:
    """Tests for get_global_config_path."""

    def test_uses_xdg_config_home(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        with patch("platform.system", return_value="Linux"):
            path = get_global_config_path()
        assert path == tmp_path / "zxing-bridge" / "config.toml"

    def test_falls_back_to_home_config(self, monkeypatch) -> None:
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        with patch("platform.system", return_value="Darwin"):
            path = get_global_config_path()
        assert path == Path.home() / ".config" / "zxing-bridge" / "config.toml"

    def test_windows_uses_appdata(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("APPDATA", str(tmp_path))
        with patch("platform.system", return_value="Windows"):
            path = get_global_config_path()
        assert path == tmp_path / "zxing-bridge" / "config.toml"


class TestLoadConfigData:
    """Tests for load_config_data."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config_data(tmp_path / "config.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[server\nport = ")
        with pytest.raises(ValueError, match="Invalid TOML"):
            load_config_data(path)

    def test_valid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[server]\nport = 9999\n")
        assert load_config_data(path) == {"server": {"port": 9999}}


class TestEnvOverrides:
    """Tests for parse_port and apply_env_overrides."""

    def test_parse_port(self) -> None:
        assert parse_port(" 9999 ") == 9999

    @pytest.mark.parametrize("value", ["abc", "12.5", ""])
    def test_parse_port_not_an_integer(self, value: str) -> None:
        with pytest.raises(ValueError, match="ZXING_PORT must be an integer"):
            parse_port(value)

    def test_parse_port_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="between 1 and 65535"):
            parse_port("70000")

    def test_no_overrides_returns_same_config(self) -> None:
        config = BridgeConfig.default()
        assert apply_env_overrides(config, {}) is config

    def test_port_override(self) -> None:
        config = apply_env_overrides(BridgeConfig.default(), {"ZXING_PORT": "9999"})
        assert config.server.port == 9999

    def test_env_port_beats_file_port(self) -> None:
        base = BridgeConfig(server=ServerConfig(port=1234))
        assert apply_env_overrides(base, {"ZXING_PORT": "9999"}).server.port == 9999

    def test_blank_port_is_ignored(self) -> None:
        config = apply_env_overrides(BridgeConfig.default(), {"ZXING_PORT": "  "})
        assert config.server.port is None

    def test_command_override_is_shell_split(self) -> None:
        config = apply_env_overrides(
            BridgeConfig.default(),
            {"ZXING_BRIDGE_SERVER_COMMAND": "java -jar 'my decoder.jar'"},
        )
        assert config.server.command == ["java", "-jar", "my decoder.jar"]


class TestSerialization:
    """Tests for config_to_data, save_config and the default template."""

    def test_none_values_are_omitted(self) -> None:
        data = config_to_data(BridgeConfig.default())
        assert "port" not in data["server"]
        assert data["client"] == {}

    def test_save_config_writes_valid_toml(self, tmp_path: Path) -> None:
        config = BridgeConfig(
            server=ServerConfig(port=9999, command=["decoder", "--fast"]),
            client=ClientConfig(rpc_timeout=20.0),
        )
        path = tmp_path / "nested" / "config.toml"
        save_config(config, path)

        with path.open("rb") as f:
            data = tomllib.load(f)
        assert BridgeConfig.from_partial(BridgeConfig.default(), data) == config

    def test_default_template_matches_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        create_default_config_file(path)

        data = load_config_data(path)
        assert BridgeConfig.from_partial(BridgeConfig.default(), data) == BridgeConfig.default()
