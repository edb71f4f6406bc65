"""Configuration provider port.

Defines the interface for loading application configuration.
"""

from pathlib import Path
from typing import Protocol

from zxing_bridge.domain.config import BridgeConfig


class ConfigProvider(Protocol):
    """Protocol for loading and providing configuration."""

    def load(self, local_path: Path | None = None) -> BridgeConfig:
        """Load configuration.

        Args:
            local_path: Optional config file overriding user-level settings

        Returns:
            BridgeConfig instance with loaded or default values

        Note:
            Implementations should gracefully fall back to defaults
            if config files are missing or invalid.
        """
        ...
