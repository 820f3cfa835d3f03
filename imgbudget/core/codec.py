"""Decode and encode primitives backed by Pillow."""

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Protocol, Union

from PIL import Image, ImageOps

from imgbudget.api.config import EncodingFormat, EncodingSpec
from imgbudget.core.errors import EncodingFailedError, InvalidImageError
from imgbudget.core.scaler import Dimensions

logger = logging.getLogger(__name__)

EXIF_ORIENTATION_TAG = 0x0112


@dataclass(frozen=True)
class ImageSource:
    """Read-only reference to an original image on disk or in memory."""

    name: str
    path: Optional[Path] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ImageSource":
        path = Path(path)
        return cls(name=path.name, path=path)

    @classmethod
    def from_bytes(cls, data: bytes, name: str) -> "ImageSource":
        return cls(name=Path(name).name or "image", data=data)

    @property
    def stem(self) -> str:
        """File name without its extension."""
        return Path(self.name).stem

    @property
    def size_bytes(self) -> int:
        """
        Byte length of the original.

        Raises:
            InvalidImageError: If the file cannot be stat'ed
        """
        if self.data is not None:
            return len(self.data)
        if self.path is None:
            return 0
        try:
            return self.path.stat().st_size
        except OSError as e:
            raise InvalidImageError(f"Cannot read {self.path}: {e}") from e

    @property
    def orientation(self) -> int:
        """Declared EXIF orientation (1 when absent); reads headers only."""
        with self.open() as fp:
            try:
                with Image.open(fp) as im:
                    return int(im.getexif().get(EXIF_ORIENTATION_TAG, 1))
            except (OSError, ValueError, Image.DecompressionBombError) as e:
                raise InvalidImageError(f"Cannot decode {self.name}: {e}") from e

    def open(self) -> BinaryIO:
        if self.data is not None:
            return BytesIO(self.data)
        if self.path is None:
            raise InvalidImageError(f"Image source {self.name!r} has neither path nor data")
        try:
            return self.path.open("rb")
        except OSError as e:
            raise InvalidImageError(f"Cannot read {self.path}: {e}") from e


class ImageCodec(Protocol):
    """Capability interface for the platform imaging primitives."""

    def decode(self, source: ImageSource) -> Image.Image: ...

    def resize(self, image: Image.Image, dimensions: Dimensions) -> Image.Image: ...

    def encode(self, image: Image.Image, spec: EncodingSpec) -> bytes: ...


class PillowCodec:
    """Default codec implementation using Pillow."""

    def decode(self, source: ImageSource) -> Image.Image:
        """
        Decode a source into a fully loaded image, honouring EXIF orientation.

        Raises:
            InvalidImageError: If the source is unreadable or zero-area
        """
        with source.open() as fp:
            try:
                with Image.open(fp) as im:
                    im.load()
                    orientation = im.getexif().get(EXIF_ORIENTATION_TAG, 1)
                    image = ImageOps.exif_transpose(im)
            except (OSError, ValueError, Image.DecompressionBombError) as e:
                raise InvalidImageError(f"Cannot decode {source.name}: {e}") from e

        if image.width <= 0 or image.height <= 0:
            raise InvalidImageError(f"{source.name} has zero-area dimensions")

        logger.debug(
            f"Decoded {source.name}: {image.width}x{image.height}, "
            f"mode={image.mode}, orientation={orientation}"
        )
        return image

    def resize(self, image: Image.Image, dimensions: Dimensions) -> Image.Image:
        if (image.width, image.height) == tuple(dimensions):
            return image
        # Use LANCZOS for high-quality downsampling
        return image.resize(tuple(dimensions), Image.Resampling.LANCZOS)

    def encode(self, image: Image.Image, spec: EncodingSpec) -> bytes:
        return encode_image(image, spec)


def encode_image(image: Image.Image, spec: EncodingSpec) -> bytes:
    """
    Encode an image with format-specific settings.

    Raises:
        EncodingFailedError: If Pillow fails to encode the image
    """
    buffer = BytesIO()

    if spec.format is EncodingFormat.JPEG and image.mode in ("RGBA", "LA", "P"):
        image = _flatten_alpha(image)

    save_kwargs: Dict[str, object] = {}

    if spec.format is EncodingFormat.JPEG:
        save_kwargs["quality"] = spec.quality
        save_kwargs["optimize"] = True
        save_kwargs["progressive"] = True
    elif spec.format is EncodingFormat.WEBP:
        save_kwargs["quality"] = spec.quality
        save_kwargs["method"] = 6  # Best compression
        save_kwargs["lossless"] = False
    elif spec.format is EncodingFormat.PNG:
        save_kwargs["optimize"] = True
        save_kwargs["compress_level"] = 9

    try:
        image.save(buffer, format=spec.format.pil_format, **save_kwargs)
    except (OSError, ValueError, KeyError) as e:
        raise EncodingFailedError(f"{spec.format.pil_format} encoding failed: {e}") from e

    return buffer.getvalue()


def _flatten_alpha(image: Image.Image) -> Image.Image:
    rgba = image.convert("RGBA")
    background = Image.new("RGB", rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.split()[3])
    return background
