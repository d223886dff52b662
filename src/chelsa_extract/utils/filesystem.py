"""Filesystem utilities for the local raster store."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

RASTER_SUFFIXES = (".tif", ".tiff")


def list_raster_files(data_dir: Path) -> list[Path]:
    """List GeoTIFF files in the local store, sorted by name.

    Args:
        data_dir: Directory holding downloaded rasters

    Returns:
        Sorted list of raster paths (empty if the directory doesn't exist)
    """
    if not data_dir.exists():
        return []

    rasters = [
        path for path in data_dir.iterdir()
        if path.is_file() and path.suffix.lower() in RASTER_SUFFIXES
    ]
    return sorted(rasters)


def get_total_size_bytes(paths: list[Path]) -> int:
    """Total size in bytes of the given files, ignoring missing ones."""
    total = 0
    for path in paths:
        if path.exists():
            total += path.stat().st_size
    return total


def remove_if_exists(path: Path) -> bool:
    """Delete a file if present.

    Returns:
        True if a file was removed
    """
    if path.exists():
        path.unlink()
        logger.debug(f"Removed {path}")
        return True
    return False


def format_bytes(size_bytes: int | float) -> str:
    """Format bytes as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.23 GB")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(size_bytes) < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"
