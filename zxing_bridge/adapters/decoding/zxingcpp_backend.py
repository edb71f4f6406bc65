"""zxing-cpp decoding backend for the reference decoder server."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ZxingCppBackend:
    """Reads barcodes with zxing-cpp from images opened by Pillow.

    Implements the DecoderBackend protocol. Imports are deferred so the
    client side of the package never loads the imaging stack.
    """

    def __init__(self, try_rotate: bool = True, try_downscale: bool = True):
        self.try_rotate = try_rotate
        self.try_downscale = try_downscale

    @property
    def name(self) -> str:
        return "zxing-cpp"

    def read_barcodes(self, path: str, qr_only: bool = False) -> list[str]:
        import zxingcpp
        from PIL import Image, UnidentifiedImageError

        if not Path(path).is_file():
            raise FileNotFoundError(f"Image file not found: {path}")

        try:
            with Image.open(path) as image:
                image.load()
                if image.mode not in ("L", "RGB"):
                    image = image.convert("RGB")
                kwargs = {
                    "try_rotate": self.try_rotate,
                    "try_downscale": self.try_downscale,
                }
                if qr_only:
                    kwargs["formats"] = zxingcpp.BarcodeFormat.QRCode
                results = zxingcpp.read_barcodes(image, **kwargs)
        except UnidentifiedImageError as e:
            raise ValueError(f"Not a readable image: {path}") from e

        texts = [result.text for result in results if result.valid]
        logger.debug(f"Read {len(texts)} barcode(s) from {path}")
        return texts
