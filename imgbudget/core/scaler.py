"""Target dimension computation for bounded downscaling."""

import logging
import math
from typing import TYPE_CHECKING, NamedTuple

from PIL import Image

from imgbudget.api.config import PixelConfig
from imgbudget.core.errors import InvalidImageError

if TYPE_CHECKING:
    from imgbudget.core.codec import ImageCodec

logger = logging.getLogger(__name__)


class Dimensions(NamedTuple):
    width: int
    height: int


def scale_dimensions(source: Dimensions, max_width: float, max_height: float) -> Dimensions:
    """
    Fit source dimensions inside a (max_width, max_height) box.

    The image is scaled down uniformly by the dominant ratio so that both
    axes fit; sources that already fit are returned unchanged.

    Args:
        source: Source (width, height) in pixels
        max_width: Maximum output width
        max_height: Maximum output height

    Returns:
        Target dimensions

    Raises:
        InvalidImageError: If either source dimension is not positive
    """
    width, height = source
    if width <= 0 or height <= 0:
        raise InvalidImageError(f"Degenerate image dimensions {width}x{height}")
    if max_width <= 0 or max_height <= 0:
        raise ValueError(f"Bounds must be positive, got {max_width}x{max_height}")

    width_ratio = width / max_width
    height_ratio = height / max_height

    if width_ratio <= 1 and height_ratio <= 1:
        return Dimensions(width, height)

    scale_factor = max(width_ratio, height_ratio)
    # Rounding must not push a fractional bound over its limit
    return Dimensions(
        max(1, min(round(width / scale_factor), math.floor(max_width))),
        max(1, min(round(height / scale_factor), math.floor(max_height))),
    )


def scale_image(
    image: Image.Image,
    max_width: float,
    max_height: float,
    pixel_config: PixelConfig,
    codec: "ImageCodec",
) -> Image.Image:
    """Convert to the pixel layout and resample to fit within the bounds."""
    if image.mode != pixel_config.mode:
        image = image.convert(pixel_config.mode)

    target = scale_dimensions(Dimensions(image.width, image.height), max_width, max_height)
    if target == (image.width, image.height):
        return image

    resized = codec.resize(image, target)
    logger.info(
        f"Resized from {image.width}x{image.height} to {resized.width}x{resized.height}"
    )
    return resized
