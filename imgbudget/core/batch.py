"""Concurrent compression of independent files."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from imgbudget.api.config import SUPPORTED_EXTS, CompressionConfig
from imgbudget.core.compressor import CompressionResult, ImageCompressor
from imgbudget.core.watermark import Watermark

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchSummary:
    total_files: int
    budget_missed: int
    total_src_bytes: int
    total_out_bytes: int

    @property
    def saved_bytes(self) -> int:
        return max(0, self.total_src_bytes - self.total_out_bytes)

    @property
    def saved_percent(self) -> float:
        if self.total_src_bytes <= 0:
            return 0.0
        return (self.saved_bytes / self.total_src_bytes) * 100.0


def _is_relative_to(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
        return True
    except ValueError:
        return False


def iter_images(
    paths: Iterable[Path],
    recursive: bool = True,
    exclude_dir: Optional[Path] = None,
) -> Iterator[Path]:
    """
    Yield supported image paths from a mixture of files and directories.

    Files inside exclude_dir are skipped so an output folder nested in an
    input folder is not compressed again.
    """
    exclude_resolved = exclude_dir.resolve() if exclude_dir else None

    for p in paths:
        p = Path(p)

        if p.is_file():
            candidates: Iterable[Path] = [p]
        elif p.is_dir():
            pattern = "**/*" if recursive else "*"
            candidates = sorted(f for f in p.glob(pattern) if f.is_file())
        else:
            logger.warning(f"Skipping missing input: {p}")
            continue

        for f in candidates:
            if f.suffix.lower() not in SUPPORTED_EXTS:
                continue
            if exclude_resolved and _is_relative_to(f.resolve(), exclude_resolved):
                continue
            yield f


def compress_many(
    sources: Sequence[Path],
    config: CompressionConfig,
    watermark: Optional[Watermark] = None,
    workers: int = 4,
) -> tuple[List[CompressionResult], BatchSummary]:
    """
    Compress each source to its own file on a thread pool.

    Every call gets its own pixel buffer and destination, so no state is
    shared between workers. Results are returned in input order.

    Raises:
        ValueError: If two sources would be written to the same path
    """
    compressor = ImageCompressor(config)

    destinations: dict[Path, Path] = {}
    for src in sources:
        dest = compressor.destination_for(src)
        if dest in destinations:
            raise ValueError(
                f"{src} and {destinations[dest]} would both be written to {dest}"
            )
        destinations[dest] = Path(src)

    logger.info(f"Compressing {len(sources)} files with {workers} workers")

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        results = list(pool.map(lambda src: compressor.compress_to_file(src, watermark), sources))

    summary = BatchSummary(
        total_files=len(results),
        budget_missed=sum(1 for r in results if r.budget_unattainable),
        total_src_bytes=sum(r.original_size for r in results),
        total_out_bytes=sum(r.size_bytes for r in results),
    )
    return results, summary
