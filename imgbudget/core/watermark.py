"""Text watermark compositing."""

import logging
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

OPAQUE_WHITE = 0xFFFFFFFF


@dataclass(frozen=True)
class Watermark:
    """Text stamped at (left, top) from the image's top-left corner."""

    text: str
    text_size: int = 24
    color: int = OPAQUE_WHITE  # 0xAARRGGBB
    left: int = 0
    top: int = 0

    def __post_init__(self) -> None:
        if self.text_size <= 0:
            raise ValueError(f"text_size must be positive, got {self.text_size}")
        if not 0 <= self.color <= 0xFFFFFFFF:
            raise ValueError(f"color must be a 32-bit ARGB value, got {self.color:#x}")

    @property
    def rgba(self) -> tuple[int, int, int, int]:
        alpha = (self.color >> 24) & 0xFF
        red = (self.color >> 16) & 0xFF
        green = (self.color >> 8) & 0xFF
        blue = self.color & 0xFF
        return red, green, blue, alpha


def parse_argb(value: str) -> int:
    """
    Parse '#AARRGGBB' or '#RRGGBB' (opaque) into an ARGB integer.

    Raises:
        ValueError: If the string is not a valid hex colour
    """
    digits = value.strip().lstrip("#")
    if len(digits) == 6:
        digits = "FF" + digits
    if len(digits) != 8:
        raise ValueError(f"Invalid colour {value!r}, expected #AARRGGBB or #RRGGBB")
    return int(digits, 16)


def apply_watermark(image: Image.Image, watermark: Watermark) -> Image.Image:
    """Draw the watermark text onto a copy of image, keeping its mode."""
    base = image.convert("RGBA")
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))

    font = ImageFont.load_default(size=watermark.text_size)
    draw = ImageDraw.Draw(overlay)
    draw.text((watermark.left, watermark.top), watermark.text, fill=watermark.rgba, font=font)

    stamped = Image.alpha_composite(base, overlay)
    logger.debug(
        f"Watermarked {image.width}x{image.height} at ({watermark.left}, {watermark.top}) "
        f"size={watermark.text_size}"
    )

    if image.mode != "RGBA":
        return stamped.convert(image.mode)
    return stamped
