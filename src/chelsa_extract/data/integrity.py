"""Integrity checks for downloaded GeoTIFF files."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from chelsa_extract.utils.filesystem import format_bytes

logger = logging.getLogger(__name__)

# Byte-order marks at the start of every TIFF: "II" little-endian, "MM" big-endian
TIFF_SIGNATURES = (b"II", b"MM")

DEFAULT_MIN_FILE_SIZE = 1_000_000  # bytes
DEFAULT_SIZE_TOLERANCE = 0.01


class FetchErrorKind(str, Enum):
    """Reason a fetch attempt was rejected."""

    INVALID_PATH = "invalid_path"
    NETWORK = "network"
    NOT_CREATED = "not_created"
    SIZE_TOO_SMALL = "size_too_small"
    SIZE_MISMATCH = "size_mismatch"
    INVALID_FORMAT = "invalid_format"


@dataclass
class ValidationResult:
    """Outcome of validating a local file."""

    ok: bool
    size: int | None = None
    kind: FetchErrorKind | None = None
    message: str = ""


def has_tiff_signature(path: Path) -> bool:
    """Check whether a file starts with one of the TIFF byte-order marks."""
    with open(path, "rb") as f:
        head = f.read(2)
    return head in TIFF_SIGNATURES


def size_within_tolerance(actual: int, expected: int | None, tolerance: float) -> bool:
    """Check the relative difference between actual and expected size.

    An unknown (None) or non-positive expected size always passes.

    Examples:
        >>> size_within_tolerance(1_005_000, 1_000_000, 0.01)
        True
        >>> size_within_tolerance(1_020_000, 1_000_000, 0.01)
        False
    """
    if expected is None or expected <= 0:
        return True
    return abs(actual - expected) / expected <= tolerance


def validate_artifact(
    path: Path,
    expected_size: int | None = None,
    min_size: int = DEFAULT_MIN_FILE_SIZE,
    tolerance: float = DEFAULT_SIZE_TOLERANCE,
) -> ValidationResult:
    """Validate a freshly downloaded file.

    Checks run in order: the file exists, it is at least ``min_size`` bytes,
    it matches ``expected_size`` within ``tolerance`` (when known), and it
    starts with a TIFF signature.

    Args:
        path: Local file to check
        expected_size: Size reported by the server, if any
        min_size: Smallest plausible size in bytes
        tolerance: Allowed relative size difference

    Returns:
        ValidationResult; ``kind`` names the first failed check
    """
    if not path.exists():
        return ValidationResult(
            ok=False,
            kind=FetchErrorKind.NOT_CREATED,
            message="File was not created after download attempt",
        )

    size = path.stat().st_size

    if size < min_size:
        return ValidationResult(
            ok=False,
            size=size,
            kind=FetchErrorKind.SIZE_TOO_SMALL,
            message=f"Downloaded file is too small: {size} bytes",
        )

    if not size_within_tolerance(size, expected_size, tolerance):
        return ValidationResult(
            ok=False,
            size=size,
            kind=FetchErrorKind.SIZE_MISMATCH,
            message=f"File size mismatch. Expected: {expected_size} bytes, Downloaded: {size} bytes",
        )

    if not has_tiff_signature(path):
        return ValidationResult(
            ok=False,
            size=size,
            kind=FetchErrorKind.INVALID_FORMAT,
            message="Downloaded file is not a valid TIFF format",
        )

    logger.debug(f"Validated {path.name} ({format_bytes(size)})")
    return ValidationResult(ok=True, size=size)
