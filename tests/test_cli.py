"""Tests for the command line interface."""

import logging
from pathlib import Path
from typing import Callable, Iterator
from unittest.mock import patch

import pytest
from PIL import Image

from imgbudget.api.config import EncodingFormat
from imgbudget.cli import EXIT_BUDGET_MISSED, EXIT_INVALID_INPUT, EXIT_OK, main
from imgbudget.core.batch import BatchSummary
from imgbudget.core.compressor import CompressionResult
from imgbudget.core.encoder import EncodeAttempt

from conftest import gradient


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers = saved_handlers
    root.setLevel(saved_level)


class TestCli:
    """Test the compress command."""

    def test_compress_folder(
        self, tmp_path: Path, write_image: Callable[..., Path], capsys: pytest.CaptureFixture
    ) -> None:
        write_image(gradient(2000, 1000), "wide.png")
        write_image(gradient(300, 300), "small.png")
        out = tmp_path / "out"

        code = main(
            ["compress", str(tmp_path / "src"), "--out", str(out), "--prefix", "c_", "--workers", "2"]
        )

        assert code == EXIT_OK
        assert sorted(p.name for p in out.iterdir()) == ["c_small.jpeg", "c_wide.jpeg"]
        with Image.open(out / "c_wide.jpeg") as im:
            assert im.size == (720, 360)
        assert "Batch Summary" in capsys.readouterr().out

    def test_explicit_name_with_many_inputs(
        self, tmp_path: Path, write_image: Callable[..., Path]
    ) -> None:
        a = write_image(gradient(50, 50), "a.png")
        b = write_image(gradient(50, 50), "b.png")

        code = main(["compress", str(a), str(b), "--out", str(tmp_path / "out"), "--name", "x"])

        assert code == EXIT_INVALID_INPUT

    def test_invalid_image(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.png"
        bad.write_text("nope")

        code = main(["compress", str(bad), "--out", str(tmp_path / "out")])

        assert code == EXIT_INVALID_INPUT

    def test_invalid_quality(self, tmp_path: Path, write_image: Callable[..., Path]) -> None:
        src = write_image(gradient(50, 50))

        with pytest.raises(SystemExit):
            main(["compress", str(src), "--out", str(tmp_path / "out"), "--quality", "300"])

    def test_no_images(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        code = main(["compress", str(tmp_path), "--out", str(tmp_path / "out")])

        assert code == EXIT_OK
        assert "No images found" in capsys.readouterr().out

    @pytest.mark.parametrize(("strict", "expected"), [(True, EXIT_BUDGET_MISSED), (False, EXIT_OK)])
    def test_budget_missed_exit_code(
        self,
        tmp_path: Path,
        write_image: Callable[..., Path],
        capsys: pytest.CaptureFixture,
        strict: bool,
        expected: int,
    ) -> None:
        """--strict reports an over-budget batch through the exit code."""
        src = write_image(gradient(64, 64))
        out = tmp_path / "out"
        over_budget = CompressionResult(
            data=b"x" * 2048,
            format=EncodingFormat.JPEG,
            quality=6,
            width=16,
            height=16,
            original_size=5000,
            budget_bytes=1024,
            attempts=[EncodeAttempt(6, 16, 16, 2048)],
            out_path=out / "photo.jpeg",
        )
        summary = BatchSummary(
            total_files=1, budget_missed=1, total_src_bytes=5000, total_out_bytes=2048
        )
        argv = ["compress", str(src), "--out", str(out), "--max-size-kb", "1"]
        if strict:
            argv.append("--strict")

        with patch("imgbudget.cli.compress_many", return_value=([over_budget], summary)):
            code = main(argv)

        assert code == expected
        assert "[over budget]" in capsys.readouterr().out
