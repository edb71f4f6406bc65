"""Decode barcodes and QR codes through an out-of-process decoder server.

The module-level functions share one lazily created DecoderSession per
process. Use DecoderSession directly for explicit lifetime control.

Example:
    >>> import zxing_bridge
    >>> zxing_bridge.decode("path/to/file.png")
    'Encoded text'
    >>> zxing_bridge.decode("no_encoded_image.png") is None
    True
"""

from zxing_bridge.core.session import (
    DecoderSession,
    PathInput,
    get_default_session,
    reset_default_session,
)
from zxing_bridge.domain.exceptions import (
    CallTimeoutError,
    LostConnectionError,
    RemoteCallError,
    ServerStartError,
    UndecodableError,
    ZxingBridgeError,
)


def decode(file: PathInput, retry_once: bool = False) -> str | None:
    """Decode the first barcode in an image file.

    Returns None when the image cannot be decoded. With ``retry_once`` a
    decoder server that died is restarted transparently, once.
    """
    return get_default_session().decode(file, retry_once=retry_once)


def decode_strict(file: PathInput, retry_once: bool = False) -> str:
    """Same as decode, but raises UndecodableError when nothing is found."""
    return get_default_session().decode_strict(file, retry_once=retry_once)


def decode_all(file: PathInput, retry_once: bool = False) -> list[str] | None:
    """Decode every barcode in an image file; None when nothing is found."""
    return get_default_session().decode_all(file, retry_once=retry_once)


def decode_all_strict(file: PathInput, retry_once: bool = False) -> list[str]:
    """Same as decode_all, but raises UndecodableError when nothing is found."""
    return get_default_session().decode_all_strict(file, retry_once=retry_once)


def qrcode_decode(file: PathInput, retry_once: bool = False) -> str | None:
    """Decode the first QR code in an image file; None when there is none."""
    return get_default_session().qrcode_decode(file, retry_once=retry_once)


__all__ = [
    "CallTimeoutError",
    "DecoderSession",
    "LostConnectionError",
    "RemoteCallError",
    "ServerStartError",
    "UndecodableError",
    "ZxingBridgeError",
    "decode",
    "decode_all",
    "decode_all_strict",
    "decode_strict",
    "get_default_session",
    "qrcode_decode",
    "reset_default_session",
]
