"""Application configuration and constants."""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EncodingFormat(str, Enum):
    """Target codec for the compressed artifact."""

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"

    @property
    def lossy(self) -> bool:
        """Whether the quality setting affects the encoded output."""
        return self is not EncodingFormat.PNG

    @property
    def extension(self) -> str:
        return self.value

    @property
    def pil_format(self) -> str:
        return self.value.upper()

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"


class PixelConfig(str, Enum):
    """In-memory channel layout of the decoded raster."""

    ARGB_8888 = "ARGB_8888"
    RGB_565 = "RGB_565"
    ALPHA_8 = "ALPHA_8"

    @property
    def mode(self) -> str:
        """Pillow image mode used for this layout."""
        return PIXEL_MODES[self]


PIXEL_MODES: Dict[PixelConfig, str] = {
    PixelConfig.ARGB_8888: "RGBA",
    PixelConfig.RGB_565: "RGB",
    PixelConfig.ALPHA_8: "L",
}

DEFAULT_MAX_WIDTH = 720.0
DEFAULT_MAX_HEIGHT = 960.0
DEFAULT_MAX_SIZE_KB = 100
DEFAULT_QUALITY = 80

# Budget loop tuning
QUALITY_STEP = 10
QUALITY_FLOOR = 6
RESET_QUALITY = 50
MIN_DIMENSION = 16
MAX_ITERATIONS = 64

SUPPORTED_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif", ".tif", ".tiff"}

MAX_UPLOAD_SIZE_MB = 25
REQUEST_TIMEOUT_SECONDS = 30
CACHE_L1_SIZE_MB = 200


def default_destination_dir() -> Path:
    """Public pictures directory of the current user."""
    return Path.home() / "Pictures"


class EncodingSpec(BaseModel):
    """Codec, pixel layout and quality for one encode."""

    model_config = ConfigDict(frozen=True)

    format: EncodingFormat = EncodingFormat.JPEG
    pixel_config: PixelConfig = PixelConfig.ARGB_8888
    quality: int = Field(default=DEFAULT_QUALITY, ge=0, le=100)

    def with_quality(self, quality: int) -> "EncodingSpec":
        return EncodingSpec(format=self.format, pixel_config=self.pixel_config, quality=quality)


class CompressionConfig(BaseModel):
    """
    Immutable settings for a single compression call.

    Construct one per application (or per request) and pass it to
    ImageCompressor; use with_changes() to derive variants.
    """

    model_config = ConfigDict(frozen=True)

    max_width: float = Field(default=DEFAULT_MAX_WIDTH, gt=0)
    max_height: float = Field(default=DEFAULT_MAX_HEIGHT, gt=0)
    max_size_kb: int = Field(default=DEFAULT_MAX_SIZE_KB, gt=0)
    encoding_spec: EncodingSpec = Field(default_factory=EncodingSpec)
    destination_dir: Path = Field(default_factory=default_destination_dir)
    file_name_prefix: Optional[str] = None
    file_name: Optional[str] = None

    @property
    def max_size_bytes(self) -> int:
        """Byte budget in binary kilobytes."""
        return self.max_size_kb * 1024

    def with_changes(self, **changes: Any) -> "CompressionConfig":
        """
        Return a validated copy with the given fields replaced.

        Accepts the encoding spec fields (format, pixel_config, quality)
        directly as well as the top-level fields.
        """
        data = self.model_dump()
        spec = dict(data["encoding_spec"])
        for key in ("format", "pixel_config", "quality"):
            if key in changes:
                spec[key] = changes.pop(key)
        data["encoding_spec"] = changes.pop("encoding_spec", spec)
        data.update(changes)
        return CompressionConfig.model_validate(data)


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    default_max_width: float = DEFAULT_MAX_WIDTH
    default_max_height: float = DEFAULT_MAX_HEIGHT
    default_max_size_kb: int = DEFAULT_MAX_SIZE_KB
    default_quality: int = DEFAULT_QUALITY
    default_format: EncodingFormat = EncodingFormat.JPEG
    default_pixel_config: PixelConfig = PixelConfig.ARGB_8888
    destination_dir: Path = Field(default_factory=default_destination_dir)

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 4
    api_cors_origins: str = "*"

    max_upload_size_mb: int = MAX_UPLOAD_SIZE_MB
    request_timeout_seconds: int = REQUEST_TIMEOUT_SECONDS

    cache_l1_size_mb: int = CACHE_L1_SIZE_MB

    log_level: str = "INFO"
    log_format: str = "json"

    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 60
    rate_limit_per_hour: int = 1000

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if self.api_cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.api_cors_origins.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def compression_config(self) -> CompressionConfig:
        """Build the default compression config from these settings."""
        return CompressionConfig(
            max_width=self.default_max_width,
            max_height=self.default_max_height,
            max_size_kb=self.default_max_size_kb,
            encoding_spec=EncodingSpec(
                format=self.default_format,
                pixel_config=self.default_pixel_config,
                quality=self.default_quality,
            ),
            destination_dir=self.destination_dir,
        )


settings = Settings()
