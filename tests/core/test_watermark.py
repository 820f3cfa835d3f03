"""Tests for watermark compositing."""

import pytest
from PIL import Image

from imgbudget.core.watermark import Watermark, apply_watermark, parse_argb


class TestWatermark:
    """Test watermark values."""

    def test_rgba_from_argb(self) -> None:
        mark = Watermark(text="x", color=0x80FF0010)

        assert mark.rgba == (0xFF, 0x00, 0x10, 0x80)

    def test_invalid_size(self) -> None:
        with pytest.raises(ValueError):
            Watermark(text="x", text_size=0)

    def test_invalid_color(self) -> None:
        with pytest.raises(ValueError):
            Watermark(text="x", color=0x1FFFFFFFF)

    @pytest.mark.parametrize(
        "value,expected",
        [("#80FF0010", 0x80FF0010), ("#FF0010", 0xFFFF0010), ("ffffffff", 0xFFFFFFFF)],
    )
    def test_parse_argb(self, value: str, expected: int) -> None:
        assert parse_argb(value) == expected

    @pytest.mark.parametrize("value", ["#FFF", "#GG000000", ""])
    def test_parse_argb_invalid(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_argb(value)


class TestApplyWatermark:
    """Test drawing onto images."""

    def test_draws_near_offset(self) -> None:
        """Text pixels appear right of and below the offset, not elsewhere."""
        image = Image.new("RGB", (200, 100), (0, 0, 0))
        mark = Watermark(text="HELLO", text_size=30, color=0xFFFFFFFF, left=50, top=40)

        result = apply_watermark(image, mark)

        bbox = result.convert("L").getbbox()
        assert bbox is not None
        assert bbox[0] >= 50
        assert bbox[1] >= 40

    def test_does_not_modify_input(self) -> None:
        image = Image.new("RGB", (100, 50), (0, 0, 0))

        apply_watermark(image, Watermark(text="A", text_size=20))

        assert image.getbbox() is None

    def test_keeps_mode(self) -> None:
        image = Image.new("L", (100, 50), 0)

        result = apply_watermark(image, Watermark(text="A", text_size=20))

        assert result.mode == "L"
        assert result.size == image.size

    def test_transparent_color_is_invisible(self) -> None:
        image = Image.new("RGB", (100, 50), (0, 0, 0))

        result = apply_watermark(image, Watermark(text="A", text_size=20, color=0x00FFFFFF))

        assert result.getbbox() is None
