"""Destination naming and artifact writing."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from imgbudget.core.errors import DirectoryCreationFailedError

logger = logging.getLogger(__name__)


def resolve_destination_path(
    destination_dir: Union[str, Path],
    original_stem: str,
    prefix: Optional[str],
    file_name: Optional[str],
    extension: str,
) -> Path:
    """
    Build the output path for a compressed artifact.

    An explicit file_name is used verbatim; otherwise the name is
    prefix + original_stem. The directory is created if missing.

    Args:
        destination_dir: Directory that receives the artifact
        original_stem: Source file name without extension
        prefix: Optional prefix, ignored when file_name is set
        file_name: Optional explicit name without extension
        extension: Extension without the leading dot

    Returns:
        Absolute output path

    Raises:
        DirectoryCreationFailedError: If the directory cannot be created
    """
    directory = Path(destination_dir)
    ensure_directory(directory)

    name = file_name if file_name else (prefix or "") + original_stem
    return directory.absolute() / f"{name}.{extension}"


def ensure_directory(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreationFailedError(f"Cannot create directory {directory}: {e}") from e


def write_atomically(path: Path, data: bytes) -> Path:
    """
    Write data to path through a temporary file in the same directory.

    The final rename replaces any existing file, so readers only ever see a
    complete artifact.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=".imgbudget_", suffix=path.suffix, dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.debug(f"Wrote {len(data)} bytes to {path}")
    return path
