"""Port interfaces for decoding.

RemoteDecoder is the fixed call surface of a decoder server as seen by the
session; DecoderBackend is what a decoder server uses to read barcodes.
"""

from typing import Any, Protocol


class RemoteDecoder(Protocol):
    """Protocol for a handle on a decoder server."""

    def health(self) -> dict[str, Any]:
        """Return server status (pid, backend name)."""
        ...

    def decode(self, path: str) -> str | None:
        """Decode the first barcode in the image, or None."""
        ...

    def decode_strict(self, path: str) -> str:
        """Decode the first barcode in the image.

        Raises:
            UndecodableError: If the image holds no readable barcode
        """
        ...

    def decode_all(self, path: str) -> list[str] | None:
        """Decode every barcode in the image, or None if there are none."""
        ...

    def decode_all_strict(self, path: str) -> list[str]:
        """Decode every barcode in the image.

        Raises:
            UndecodableError: If the image holds no readable barcode
        """
        ...

    def qrcode_decode(self, path: str) -> str | None:
        """Decode the first QR code in the image, or None."""
        ...


class DecoderBackend(Protocol):
    """Protocol for the barcode reading library behind a decoder server."""

    @property
    def name(self) -> str:
        """Backend name reported by the health check."""
        ...

    def read_barcodes(self, path: str, qr_only: bool = False) -> list[str]:
        """Read all barcodes in an image file.

        Args:
            path: Path to the image file
            qr_only: Only report QR codes

        Returns:
            Decoded texts in reading order (empty if none were found)

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not an image the backend can read
        """
        ...
