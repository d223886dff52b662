"""Point extraction of monthly temperatures from CHELSA GeoTIFFs.

CHELSA stores near-surface air temperature as integers in tenths of a
kelvin. Each raster is sampled at the cell containing every site's
coordinate, using the raster's own transform; no reprojection is done, so
site coordinates must already be in the raster's reference frame.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

import numpy as np
import polars as pl
import rasterio
from rasterio.errors import RasterioError
from rasterio.windows import Window

from chelsa_extract.config.sites import SamplingSite

logger = logging.getLogger(__name__)

# Expected format: CHELSA_tas_MM_YYYY_V.2.1.tif
FILENAME_DATE_PATTERN = re.compile(r"CHELSA_tas_(\d{2})_(\d{4})_")

# Kelvin * 10 -> degrees Celsius
KELVIN_SCALE = 0.1
KELVIN_OFFSET = 273.15

TEMPERATURE_COLUMN = "temperature_c"

RECORD_SCHEMA: dict[str, pl.DataType] = {
    "stream": pl.Utf8,
    "site_code": pl.Utf8,
    "site_name": pl.Utf8,
    "x": pl.Float64,
    "y": pl.Float64,
    "year": pl.Int32,
    "month": pl.Int32,
    TEMPERATURE_COLUMN: pl.Float64,
}


@dataclass
class ExtractionResult:
    """Records extracted from a set of rasters plus per-file problems."""

    records: pl.DataFrame
    files_processed: int = 0
    skipped_files: list[str] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)


def parse_date_from_filename(filename: str) -> Optional[tuple[int, int]]:
    """Extract year and month from a CHELSA file name.

    Args:
        filename: File name such as ``CHELSA_tas_07_2015_V.2.1.tif``

    Returns:
        Tuple of (year, month), or None if the name doesn't match

    Examples:
        >>> parse_date_from_filename("CHELSA_tas_07_2015_V.2.1.tif")
        (2015, 7)
        >>> parse_date_from_filename("CHELSA_tas_2015.tif") is None
        True
    """
    match = FILENAME_DATE_PATTERN.search(filename)
    if not match:
        return None

    month = int(match.group(1))
    year = int(match.group(2))
    if not 1 <= month <= 12:
        return None

    return year, month


def kelvin10_to_celsius(raw: float) -> float:
    """Convert a raw CHELSA value (tenths of a kelvin) to degrees Celsius."""
    return raw * KELVIN_SCALE - KELVIN_OFFSET


def sample_sites(raster_path: Path, sites: Sequence[SamplingSite]) -> list[Optional[float]]:
    """Sample band 1 of a raster at each site and convert to Celsius.

    Sites outside the raster extent and nodata cells give None.

    Args:
        raster_path: GeoTIFF to sample
        sites: Sites whose ``(x, y)`` is in the raster's reference frame

    Returns:
        One temperature (or None) per site, in site order

    Raises:
        RasterioError: If the raster can't be opened or read
    """
    values: list[Optional[float]] = []

    with rasterio.open(raster_path) as src:
        for site in sites:
            row, col = src.index(*site.coordinate)
            if not (0 <= row < src.height and 0 <= col < src.width):
                logger.debug(f"Site {site.site_code} lies outside {raster_path.name}")
                values.append(None)
                continue

            cell = src.read(1, window=Window(col, row, 1, 1), masked=True)
            value = cell[0, 0]
            if np.ma.is_masked(value):
                values.append(None)
            else:
                values.append(kelvin10_to_celsius(float(value)))

    return values


def extract_records(
    raster_paths: Sequence[Path],
    sites: Sequence[SamplingSite],
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> ExtractionResult:
    """Build the record table for every raster and site.

    A raster whose name has no ``_MM_YYYY_`` date is skipped with a warning
    and contributes no rows. A raster that can't be read contributes one row
    per site with a missing temperature.

    Args:
        raster_paths: Validated local rasters
        sites: Sampling sites
        progress_callback: Optional callback(current, total, file_name)

    Returns:
        ExtractionResult whose ``records`` follow ``RECORD_SCHEMA``
    """
    columns: dict[str, list] = {name: [] for name in RECORD_SCHEMA}
    result = ExtractionResult(records=pl.DataFrame(schema=RECORD_SCHEMA))
    total = len(raster_paths)

    for i, raster_path in enumerate(raster_paths, start=1):
        raster_path = Path(raster_path)
        file_name = raster_path.name

        if progress_callback:
            progress_callback(i, total, file_name)

        date_info = parse_date_from_filename(file_name)
        if date_info is None:
            logger.warning(f"Could not extract date from {file_name}, skipping")
            result.skipped_files.append(file_name)
            continue
        year, month = date_info

        try:
            temperatures = sample_sites(raster_path, sites)
        except (RasterioError, OSError, ValueError) as e:
            logger.error(f"Error processing raster file {file_name}: {e}")
            result.failed_files.append(file_name)
            temperatures = [None] * len(sites)

        for site, temperature in zip(sites, temperatures):
            columns["stream"].append(site.stream)
            columns["site_code"].append(site.site_code)
            columns["site_name"].append(site.site_name)
            columns["x"].append(site.x)
            columns["y"].append(site.y)
            columns["year"].append(year)
            columns["month"].append(month)
            columns[TEMPERATURE_COLUMN].append(temperature)

        result.files_processed += 1

    result.records = pl.DataFrame(columns, schema=RECORD_SCHEMA)
    logger.info(
        f"Extracted {result.records.height} records from {result.files_processed} files "
        f"({len(result.skipped_files)} skipped, {len(result.failed_files)} unreadable)"
    )
    return result
