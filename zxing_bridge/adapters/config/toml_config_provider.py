"""TOML-based configuration provider.

Config loading priority (highest to lowest):
1. Environment: ZXING_PORT, ZXING_BRIDGE_SERVER_COMMAND
2. Local: an explicit config file (e.g. ./zxing-bridge.toml)
3. Global: ~/.config/zxing-bridge/config.toml (user defaults)
4. Built-in defaults
"""

import logging
from collections.abc import Mapping
from pathlib import Path

from zxing_bridge.domain.config import BridgeConfig
from zxing_bridge.shared.config_io import (
    apply_env_overrides,
    get_global_config_path,
    load_config_data,
)

logger = logging.getLogger(__name__)

LOCAL_CONFIG_NAME = "zxing-bridge.toml"


class TomlConfigProvider:
    """Configuration provider that loads from TOML files and the environment.

    Implements config cascade:
    1. Load global config if present
    2. Load local config if present (section-level override of global)
    3. Apply environment overrides
    4. Missing values fall back to built-in defaults

    Invalid config files are logged and ignored. Invalid environment values
    raise, since they are an explicit instruction from the caller.
    """

    def __init__(
        self,
        global_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.global_path = global_path
        self.environ = environ

    def load(self, local_path: Path | None = None) -> BridgeConfig:
        """Load configuration with global fallback.

        Args:
            local_path: Config file to apply on top of the global config
                (default: ./zxing-bridge.toml if it exists)

        Returns:
            BridgeConfig instance with merged values or defaults

        Raises:
            ValueError: If an environment override is invalid
        """
        global_path = self.global_path or get_global_config_path()
        local_path = local_path or Path.cwd() / LOCAL_CONFIG_NAME

        config = BridgeConfig.default()

        if global_path.exists():
            try:
                config = BridgeConfig.from_partial(config, load_config_data(global_path))
                logger.debug("Loaded global config from %s", global_path)
            except (FileNotFoundError, ValueError) as e:
                logger.warning(
                    "Failed to parse global config at %s: %s. Ignoring global config.",
                    global_path,
                    e,
                )

        if local_path.exists():
            try:
                config = BridgeConfig.from_partial(config, load_config_data(local_path))
                logger.debug("Loaded local config from %s", local_path)
            except (FileNotFoundError, ValueError) as e:
                logger.warning(
                    "Failed to parse %s: %s. Using global/default configuration.",
                    local_path,
                    e,
                )

        return apply_env_overrides(config, self.environ)
