"""CLI error handling with actionable hints.

Provides consistent error formatting and common error factory functions
for all zxing-bridge CLI commands.
"""

from typing import NoReturn

import click


class BridgeCliError(click.ClickException):
    """CLI error with actionable hint for users.

    Attributes:
        message: The primary error message.
        hint: Optional actionable suggestion for the user.

    Example:
        raise BridgeCliError(
            "Decoder server failed to start",
            hint="Check that zxing-cpp and Pillow are installed",
        )
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        """Initialize the error with message and optional hint.

        Args:
            message: The primary error message.
            hint: Optional actionable suggestion for the user.
        """
        super().__init__(message)
        self.hint = hint

    def format_message(self) -> str:
        """Format the error message with hint if present.

        Returns:
            Formatted error message, with hint on a new line if provided.
        """
        msg = self.message
        if self.hint:
            msg += f"\nHint: {self.hint}"
        return msg


def file_not_found_error(path: str) -> NoReturn:
    """Raise error when an image file does not exist.

    Raises:
        BridgeCliError: Always raises with the missing path.
    """
    raise BridgeCliError(
        f"Image file '{path}' not found",
        hint="Check the path; relative paths are resolved against the current directory",
    )


def spawn_failed_error(command: list[str], error: OSError) -> NoReturn:
    """Raise error when the decoder server command cannot be launched.

    Raises:
        BridgeCliError: Always raises with the failing command.
    """
    raise BridgeCliError(
        f"Cannot launch decoder server '{' '.join(command)}': {error}",
        hint="Set server.command in config.toml or ZXING_BRIDGE_SERVER_COMMAND",
    )
