"""
File operation utilities

This module handles atomic file writes and temporary file cleanup.
"""
import logging
import os
from pathlib import Path

import aiofiles


logger = logging.getLogger(__name__)


async def write_file_atomic(path: Path | str, data: bytes | str) -> Path:
    """
    Write a file via a sibling temporary file and rename it over the target

    Readers never see a half-written file; after a crash the previous
    content is still in place.

    Args:
        path: Target file path
        data: Content to write (str is encoded as UTF-8)

    Returns:
        Path to the written file

    Raises:
        OSError: If writing or renaming fails
    """
    path = Path(path)
    temp_file = path.with_name(f".{path.name}.tmp")
    payload = data.encode("utf-8") if isinstance(data, str) else data

    try:
        async with aiofiles.open(temp_file, 'wb') as f:
            await f.write(payload)
        os.replace(temp_file, path)
    except OSError as e:
        logger.error(f"Failed to write {path}: {e}")
        cleanup_temp_file(temp_file)
        raise

    logger.debug(f"Wrote {len(payload) / 1024:.1f} KB to {path}")
    return path


def cleanup_temp_file(file_path: Path) -> bool:
    """
    Safely delete a temporary file

    Args:
        file_path: Path to file to delete

    Returns:
        True if deleted successfully, False otherwise
    """
    if not file_path or not file_path.exists():
        return False

    try:
        file_path.unlink()
        logger.debug(f"Cleaned up temporary file: {file_path}")
        return True
    except (OSError, PermissionError) as e:
        logger.warning(f"Failed to delete temporary file {file_path}: {e}")
        return False
