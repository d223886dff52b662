"""Download configuration for CHELSA raster files."""

from pathlib import Path

from pydantic import Field

from chelsa_extract.config.base import BaseConfig
from chelsa_extract.config.paths import DEFAULT_DATA_DIR


class DownloadSettings(BaseConfig):
    """Configuration for fetching and validating CHELSA GeoTIFFs.

    Example:
        >>> settings = DownloadSettings(max_consecutive_failures=3)
        >>> settings.min_file_size
        1000000
    """

    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        description="Directory holding one file per remote path",
    )

    # Integrity checks
    min_file_size: int = Field(
        default=1_000_000,
        ge=0,
        description="Smallest plausible size in bytes for a monthly grid",
    )
    size_tolerance: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Allowed relative difference from the server-reported size",
    )
    verify_existing_signature: bool = Field(
        default=False,
        description="Also check the TIFF signature of files kept from a previous run",
    )

    # Failure handling
    max_consecutive_failures: int = Field(
        default=1,
        ge=1,
        description="Consecutive failed downloads that abort the whole run",
    )

    # Network settings
    timeout_seconds: float = Field(default=300.0, gt=0, le=3600)
    chunk_size: int = Field(default=8192, ge=1024)
    pacing_delay_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=60.0,
        description="Pause after each successful download",
    )
    user_agent: str = Field(default="chelsa-extract/0.1.0 (research)")
    show_progress: bool = Field(default=True, description="Show a tqdm bar per download")

