"""Byte-budgeted encoding loop."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from PIL import Image

from imgbudget.api.config import (
    MAX_ITERATIONS,
    MIN_DIMENSION,
    QUALITY_FLOOR,
    QUALITY_STEP,
    RESET_QUALITY,
    EncodingSpec,
)
from imgbudget.core.codec import ImageCodec, PillowCodec
from imgbudget.core.scaler import Dimensions, scale_dimensions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodeAttempt:
    """One encode performed by the budget loop."""

    quality: int
    width: int
    height: int
    size_bytes: int


@dataclass
class EncodeOutcome:
    """Encoded bytes chosen by the budget loop and how it got there."""

    data: bytes
    quality: int
    width: int
    height: int
    budget_bytes: int
    attempts: list[EncodeAttempt] = field(default_factory=list)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def budget_met(self) -> bool:
        return self.size_bytes <= self.budget_bytes

    @property
    def iterations(self) -> int:
        return len(self.attempts)


class BudgetedEncoder:
    """
    Re-encode an image until it fits a byte budget.

    Quality is lowered in fixed steps down to a floor; past the floor the
    pixel dimensions are halved and quality is reset, and the loop resumes.
    The loop stops once the budget is met, after max_iterations encodes, or
    when halving would go below min_dimension. The step sequence depends
    only on the measured sizes, so identical inputs give identical output.
    """

    def __init__(
        self,
        codec: Optional[ImageCodec] = None,
        quality_step: int = QUALITY_STEP,
        quality_floor: int = QUALITY_FLOOR,
        reset_quality: int = RESET_QUALITY,
        min_dimension: int = MIN_DIMENSION,
        max_iterations: int = MAX_ITERATIONS,
    ) -> None:
        """Initialize the encoder with a codec and loop limits."""
        if quality_step <= 0:
            raise ValueError("quality_step must be positive")
        if max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        self.codec: ImageCodec = codec or PillowCodec()
        self.quality_step = quality_step
        self.quality_floor = quality_floor
        self.reset_quality = reset_quality
        self.min_dimension = max(1, min_dimension)
        self.max_iterations = max_iterations

    def compress(self, image: Image.Image, spec: EncodingSpec, max_size_bytes: int) -> EncodeOutcome:
        """
        Encode image so the result is at most max_size_bytes when achievable.

        Args:
            image: Decoded (and already scaled) image
            spec: Format, pixel config and starting quality
            max_size_bytes: Byte budget

        Returns:
            EncodeOutcome holding the first encoding within budget, or the
            smallest encoding produced when the budget is unattainable
        """
        if max_size_bytes <= 0:
            raise ValueError(f"max_size_bytes must be positive, got {max_size_bytes}")

        attempts: list[EncodeAttempt] = []
        quality = spec.quality
        current = image

        data = self._encode(current, spec, quality, attempts)
        best = (data, quality, current.width, current.height)

        if len(data) <= max_size_bytes:
            return self._outcome(best, max_size_bytes, attempts)

        logger.info(
            f"Initial encode {len(data) / 1024:.1f}KB exceeds budget "
            f"{max_size_bytes / 1024:.1f}KB at quality {quality}, reducing"
        )

        while len(attempts) < self.max_iterations:
            if spec.format.lossy and quality > self.quality_floor:
                quality = max(quality - self.quality_step, self.quality_floor)
            else:
                target = scale_dimensions(
                    Dimensions(current.width, current.height),
                    current.width / 2,
                    current.height / 2,
                )
                if min(target) < self.min_dimension:
                    logger.debug(
                        f"Stopping at {current.width}x{current.height}: "
                        f"halving would drop below {self.min_dimension}px"
                    )
                    break
                current = self.codec.resize(current, target)
                if spec.format.lossy:
                    quality = min(self.reset_quality, spec.quality)
                logger.debug(f"Halved to {current.width}x{current.height}, quality reset to {quality}")

            data = self._encode(current, spec, quality, attempts)
            if len(data) < len(best[0]):
                best = (data, quality, current.width, current.height)
            if len(data) <= max_size_bytes:
                best = (data, quality, current.width, current.height)
                break

        outcome = self._outcome(best, max_size_bytes, attempts)
        if not outcome.budget_met:
            logger.warning(
                f"Budget unattainable: smallest encoding {outcome.size_bytes} bytes "
                f"> {max_size_bytes} bytes after {outcome.iterations} attempts"
            )
        return outcome

    def _encode(
        self,
        image: Image.Image,
        spec: EncodingSpec,
        quality: int,
        attempts: list[EncodeAttempt],
    ) -> bytes:
        data = self.codec.encode(image, spec.with_quality(quality))
        attempts.append(EncodeAttempt(quality, image.width, image.height, len(data)))
        logger.debug(f"Encoded {image.width}x{image.height} q={quality}: {len(data)} bytes")
        return data

    def _outcome(
        self,
        best: tuple[bytes, int, int, int],
        max_size_bytes: int,
        attempts: list[EncodeAttempt],
    ) -> EncodeOutcome:
        data, quality, width, height = best
        return EncodeOutcome(
            data=data,
            quality=quality,
            width=width,
            height=height,
            budget_bytes=max_size_bytes,
            attempts=attempts,
        )
