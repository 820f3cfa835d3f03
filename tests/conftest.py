"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from pathlib import Path
from typing import Callable

import numpy as np
import pytest
from PIL import Image

from imgbudget.api.config import EncodingFormat, EncodingSpec
from imgbudget.core.cache import CacheService
from imgbudget.core.codec import ImageSource
from imgbudget.core.scaler import Dimensions


class FakeCodec:
    """Codec whose encoded size is a pure function of pixels and quality."""

    def __init__(self) -> None:
        self.encoded: list[tuple[int, int, int]] = []

    def decode(self, source: ImageSource) -> Image.Image:
        raise NotImplementedError

    def resize(self, image: Image.Image, dimensions: Dimensions) -> Image.Image:
        return image.resize(tuple(dimensions), Image.Resampling.NEAREST)

    def encode(self, image: Image.Image, spec: EncodingSpec) -> bytes:
        self.encoded.append((spec.quality, image.width, image.height))
        pixels = image.width * image.height
        if spec.format is EncodingFormat.PNG:
            return b"p" * pixels
        return b"j" * max(1, pixels * spec.quality // 100)


def gradient(width: int, height: int) -> Image.Image:
    """Smooth RGB gradient, cheap to encode."""
    xs = np.linspace(0, 255, width, dtype=np.float32)
    ys = np.linspace(0, 255, height, dtype=np.float32)
    arr = np.empty((height, width, 3), dtype=np.uint8)
    arr[..., 0] = xs[np.newaxis, :].astype(np.uint8)
    arr[..., 1] = ys[:, np.newaxis].astype(np.uint8)
    arr[..., 2] = 128
    return Image.fromarray(arr)


def noise(width: int, height: int, seed: int = 0) -> Image.Image:
    """Random RGB noise, close to incompressible."""
    rng = np.random.default_rng(seed)
    return Image.fromarray(rng.integers(0, 256, (height, width, 3), dtype=np.uint8))


@pytest.fixture
def fake_codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture
def cache_service() -> CacheService:
    """Create cache service with L1 in-memory cache only."""
    return CacheService(max_size_mb=1)


@pytest.fixture
def sample_image() -> Image.Image:
    """Create a sample test image."""
    return gradient(1920, 1080)


@pytest.fixture
def noisy_image() -> Image.Image:
    """Create a photographic-like image that resists compression."""
    return noise(400, 300)


@pytest.fixture
def write_image(tmp_path: Path) -> Callable[..., Path]:
    """Write an image to a file under tmp_path/src and return its path."""

    def _write(image: Image.Image, name: str = "photo.png") -> Path:
        src_dir = tmp_path / "src"
        src_dir.mkdir(exist_ok=True)
        path = src_dir / name
        image.save(path)
        return path

    return _write
