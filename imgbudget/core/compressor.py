"""Compression pipeline: decode, scale, watermark, budgeted encode, write."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from imgbudget.api.config import CompressionConfig, EncodingFormat
from imgbudget.core.codec import ImageCodec, ImageSource, PillowCodec
from imgbudget.core.encoder import BudgetedEncoder, EncodeAttempt
from imgbudget.core.errors import BudgetUnattainableError
from imgbudget.core.paths import resolve_destination_path, write_atomically
from imgbudget.core.scaler import scale_image
from imgbudget.core.watermark import Watermark, apply_watermark

logger = logging.getLogger(__name__)

SourceLike = Union[ImageSource, str, Path]


@dataclass
class CompressionResult:
    """Outcome of one compression call."""

    data: bytes
    format: EncodingFormat
    quality: int
    width: int
    height: int
    original_size: int
    budget_bytes: int
    attempts: list[EncodeAttempt] = field(default_factory=list)
    out_path: Optional[Path] = None
    processing_time_ms: int = 0

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def budget_met(self) -> bool:
        return self.size_bytes <= self.budget_bytes

    @property
    def budget_unattainable(self) -> bool:
        return not self.budget_met

    @property
    def iterations(self) -> int:
        return len(self.attempts)

    def raise_for_budget(self) -> None:
        """Raise BudgetUnattainableError if the budget was missed."""
        if self.budget_unattainable:
            raise BudgetUnattainableError(self.size_bytes, self.budget_bytes)


class ImageCompressor:
    """Compress images according to a caller-supplied configuration."""

    def __init__(
        self,
        config: Optional[CompressionConfig] = None,
        codec: Optional[ImageCodec] = None,
        encoder: Optional[BudgetedEncoder] = None,
    ) -> None:
        """Initialize the compressor; the config is never modified."""
        self.config = config or CompressionConfig()
        self.codec: ImageCodec = codec or PillowCodec()
        self.encoder = encoder or BudgetedEncoder(codec=self.codec)

    def compress_to_file(
        self, source: SourceLike, watermark: Optional[Watermark] = None
    ) -> CompressionResult:
        """
        Compress source and write it to the resolved destination path.

        Args:
            source: Image source or path to the original image
            watermark: Optional text stamped before encoding

        Returns:
            CompressionResult with out_path set

        Raises:
            InvalidImageError: If the source cannot be decoded
            DirectoryCreationFailedError: If the destination cannot be created
            EncodingFailedError: If the encoder fails
        """
        source = _as_source(source)
        out_path = self.destination_for(source)
        result = self._run(source, watermark)

        write_atomically(out_path, result.data)
        result.out_path = out_path

        logger.info(
            f"Compressed {source.name} -> {out_path.name}: {result.width}x{result.height}, "
            f"{result.size_bytes / 1024:.1f}KB, quality {result.quality}, "
            f"{result.iterations} attempts, time: {result.processing_time_ms}ms"
        )
        return result

    def compress_to_bytes(
        self, source: SourceLike, watermark: Optional[Watermark] = None
    ) -> CompressionResult:
        """Compress source in memory without writing anything."""
        return self._run(_as_source(source), watermark)

    def compress_to_image(self, source: SourceLike) -> Image.Image:
        """Decode and scale source, returning the resized image only."""
        source = _as_source(source)
        image = self.codec.decode(source)
        return scale_image(
            image,
            self.config.max_width,
            self.config.max_height,
            self.config.encoding_spec.pixel_config,
            self.codec,
        )

    def destination_for(self, source: SourceLike) -> Path:
        """Resolve (and create the directory for) the output path of source."""
        source = _as_source(source)
        return resolve_destination_path(
            self.config.destination_dir,
            source.stem,
            self.config.file_name_prefix,
            self.config.file_name,
            self.config.encoding_spec.format.extension,
        )

    def _run(self, source: ImageSource, watermark: Optional[Watermark]) -> CompressionResult:
        start_time = time.time()
        config = self.config

        image = self.compress_to_image(source)
        if watermark is not None:
            image = apply_watermark(image, watermark)

        outcome = self.encoder.compress(image, config.encoding_spec, config.max_size_bytes)

        return CompressionResult(
            data=outcome.data,
            format=config.encoding_spec.format,
            quality=outcome.quality,
            width=outcome.width,
            height=outcome.height,
            original_size=source.size_bytes,
            budget_bytes=outcome.budget_bytes,
            attempts=outcome.attempts,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )


def _as_source(source: SourceLike) -> ImageSource:
    if isinstance(source, ImageSource):
        return source
    return ImageSource.from_path(source)
