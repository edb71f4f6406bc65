"""Domain value objects with validation.

Value objects that validate at construction time, so an endpoint outside
the loopback port range cannot be represented.
"""

from dataclasses import dataclass

from zxing_bridge.domain.config import LOOPBACK_HOST


@dataclass(frozen=True)
class Endpoint:
    """Network location of a decoder server.

    Attributes:
        port: TCP port, 1-65535
        host: Always the loopback address

    Raises:
        ValueError: If the port is out of range.
    """

    port: int
    host: str = LOOPBACK_HOST

    def __post_init__(self) -> None:
        """Validate the port range."""
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)

    @property
    def uri(self) -> str:
        return f"tcp://{self.host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"
