"""Command line interface for batch compression."""

import argparse
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from imgbudget.api.config import (
    DEFAULT_MAX_HEIGHT,
    DEFAULT_MAX_SIZE_KB,
    DEFAULT_MAX_WIDTH,
    DEFAULT_QUALITY,
    CompressionConfig,
    EncodingFormat,
    EncodingSpec,
    PixelConfig,
    settings,
)
from imgbudget.core.batch import compress_many, iter_images
from imgbudget.core.errors import CompressionError, InvalidImageError
from imgbudget.core.watermark import Watermark, parse_argb
from imgbudget.utils.metrics import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BUDGET_MISSED = 1
EXIT_INVALID_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="imgbudget",
        description="Scale and re-encode images until they fit a byte budget",
    )
    p.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    sub = p.add_subparsers(dest="command", required=True)

    c = sub.add_parser("compress", help="Compress images in files/folders")
    c.add_argument("inputs", nargs="+", help="Files and/or folders to process")
    c.add_argument("--out", default=None, help="Output directory (default: ~/Pictures)")
    c.add_argument("--no-recursive", action="store_true", help="Do not scan folders recursively")

    # Budget
    c.add_argument("--max-width", type=float, default=DEFAULT_MAX_WIDTH, help="Max width (px)")
    c.add_argument("--max-height", type=float, default=DEFAULT_MAX_HEIGHT, help="Max height (px)")
    c.add_argument(
        "--max-size-kb", type=int, default=DEFAULT_MAX_SIZE_KB, help="Byte budget in KB"
    )
    c.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 if any file could not meet the budget",
    )

    # Encoding
    c.add_argument(
        "--format",
        choices=[f.value for f in EncodingFormat],
        default=EncodingFormat.JPEG.value,
        help="Output format (default: jpeg)",
    )
    c.add_argument(
        "--pixel-config",
        choices=[p.value for p in PixelConfig],
        default=PixelConfig.ARGB_8888.value,
        help="Pixel layout (default: ARGB_8888)",
    )
    c.add_argument("--quality", type=int, default=DEFAULT_QUALITY, help="Starting quality 0-100")

    # Naming
    c.add_argument("--prefix", default=None, help="File name prefix")
    c.add_argument("--name", default=None, help="Explicit file name (single input only)")

    # Watermark
    c.add_argument("--watermark-text", default=None, help="Text stamped before encoding")
    c.add_argument("--watermark-size", type=int, default=24, help="Watermark text size (px)")
    c.add_argument("--watermark-color", default="#FFFFFFFF", help="Watermark colour #AARRGGBB")
    c.add_argument("--watermark-left", type=int, default=0, help="Watermark left offset (px)")
    c.add_argument("--watermark-top", type=int, default=0, help="Watermark top offset (px)")

    c.add_argument("--workers", type=int, default=4, help="Parallel workers (default: 4)")

    return p


def _build_watermark(args: argparse.Namespace) -> Optional[Watermark]:
    if not args.watermark_text:
        return None
    return Watermark(
        text=args.watermark_text,
        text_size=args.watermark_size,
        color=parse_argb(args.watermark_color),
        left=args.watermark_left,
        top=args.watermark_top,
    )


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(log_level=args.log_level, log_format="text")

    if args.command != "compress":
        parser.print_help()
        return EXIT_INVALID_INPUT

    out_dir = Path(args.out) if args.out else settings.destination_dir
    try:
        config = CompressionConfig(
            max_width=args.max_width,
            max_height=args.max_height,
            max_size_kb=args.max_size_kb,
            encoding_spec=EncodingSpec(
                format=EncodingFormat(args.format),
                pixel_config=PixelConfig(args.pixel_config),
                quality=args.quality,
            ),
            destination_dir=out_dir,
            file_name_prefix=args.prefix,
            file_name=args.name,
        )
        watermark = _build_watermark(args)
    except (ValidationError, ValueError) as e:
        parser.error(str(e))

    sources = list(
        iter_images([Path(p) for p in args.inputs], recursive=not args.no_recursive, exclude_dir=out_dir)
    )
    if not sources:
        print("No images found.")
        return EXIT_OK

    try:
        results, summary = compress_many(sources, config, watermark=watermark, workers=args.workers)
    except InvalidImageError as e:
        print(f"Invalid image: {e}")
        return EXIT_INVALID_INPUT
    except ValueError as e:
        print(f"Error: {e}")
        return EXIT_INVALID_INPUT
    except CompressionError as e:
        print(f"Compression failed: {e}")
        return EXIT_INVALID_INPUT

    for r in results:
        flag = "" if r.budget_met else "  [over budget]"
        print(
            f"{r.out_path}  {r.width}x{r.height}  q={r.quality}  "
            f"{r.size_bytes / 1024:.1f}KB{flag}"
        )

    print("\n=== Batch Summary ===")
    print("Files        :", summary.total_files)
    print("Over budget  :", summary.budget_missed)
    print(f"Saved        : {summary.saved_bytes} bytes ({summary.saved_percent:.1f}%)")

    if args.strict and summary.budget_missed:
        return EXIT_BUDGET_MISSED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
