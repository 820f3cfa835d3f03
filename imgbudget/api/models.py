"""API request and response models."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from imgbudget.api.config import CompressionConfig, EncodingFormat, PixelConfig
from imgbudget.core.watermark import Watermark, parse_argb


class CompressRequest(BaseModel):
    """Compression parameters; unset fields fall back to the service defaults."""

    max_width: Optional[float] = Field(default=None, gt=0, description="Maximum width in pixels")
    max_height: Optional[float] = Field(
        default=None, gt=0, description="Maximum height in pixels"
    )
    max_size_kb: Optional[int] = Field(
        default=None, gt=0, description="Byte budget in binary kilobytes"
    )
    format: Optional[EncodingFormat] = Field(default=None, description="Output image format")
    pixel_config: Optional[PixelConfig] = Field(default=None, description="Pixel layout")
    quality: Optional[int] = Field(
        default=None, ge=0, le=100, description="Starting quality for lossy formats"
    )
    output: Literal["base64", "json", "binary"] = Field(
        default="json",
        description="Response format: base64 data URI, JSON with metadata, or binary image",
    )
    strict: bool = Field(
        default=False, description="Fail with 422 instead of returning an over-budget image"
    )
    watermark_text: Optional[str] = Field(default=None, min_length=1, max_length=200)
    watermark_size: int = Field(default=24, ge=1, le=512)
    watermark_color: str = Field(default="#FFFFFFFF", description="Colour as #AARRGGBB")
    watermark_left: int = Field(default=0, ge=0)
    watermark_top: int = Field(default=0, ge=0)

    @field_validator("watermark_color")
    @classmethod
    def _validate_color(cls, value: str) -> str:
        parse_argb(value)
        return value

    def to_config(self, base: CompressionConfig) -> CompressionConfig:
        """Overlay the explicitly given parameters on a base config."""
        changes = self.model_dump(
            include={"max_width", "max_height", "max_size_kb", "format", "pixel_config", "quality"},
            exclude_none=True,
        )
        if not changes:
            return base
        return base.with_changes(**changes)

    def to_watermark(self) -> Optional[Watermark]:
        if not self.watermark_text:
            return None
        return Watermark(
            text=self.watermark_text,
            text_size=self.watermark_size,
            color=parse_argb(self.watermark_color),
            left=self.watermark_left,
            top=self.watermark_top,
        )


class CompressResponse(BaseModel):
    """Response containing the compressed image and how it was produced."""

    data: str = Field(..., description="Base64-encoded image data")
    format: str = Field(..., description="Image format (jpeg, png, webp)")
    mime_type: str = Field(..., description="MIME type of the image")
    width: int = Field(..., description="Image width in pixels")
    height: int = Field(..., description="Image height in pixels")
    quality: int = Field(..., description="Quality of the returned encoding")
    size_bytes: int = Field(..., description="Size of the encoded image in bytes")
    budget_bytes: int = Field(..., description="Requested byte budget")
    budget_met: bool = Field(..., description="Whether the encoding fits the budget")
    iterations: int = Field(..., description="Number of encodes performed")
    original_size_bytes: int = Field(..., description="Size of the uploaded file")
    cache_hit: bool = Field(..., description="Whether this response was served from cache")
    processing_ms: int = Field(..., description="Processing time in milliseconds")
