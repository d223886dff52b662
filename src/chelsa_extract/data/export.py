"""CSV export of the record table."""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

import polars as pl

from chelsa_extract.config.paths import ensure_directories
from chelsa_extract.data.stats import sort_records

logger = logging.getLogger(__name__)

OUTPUT_PREFIX = "CHELSA_temperature_data"
MISSING_VALUE = "NA"


def output_filename(run_date: Optional[date] = None) -> str:
    """File name for the record table, e.g. ``CHELSA_temperature_data_20250804.csv``."""
    run_date = run_date or date.today()
    return f"{OUTPUT_PREFIX}_{run_date:%Y%m%d}.csv"


def write_records_csv(
    df: pl.DataFrame,
    output_dir: Path,
    run_date: Optional[date] = None,
) -> Path:
    """Write records sorted by site, year and month to a dated CSV file.

    Missing temperatures are written as ``NA``.

    Args:
        df: Record table
        output_dir: Destination directory (created if needed)
        run_date: Date embedded in the file name (default: today)

    Returns:
        Path to the written file
    """
    output_dir = Path(output_dir)
    ensure_directories(output_dir)
    output_path = output_dir / output_filename(run_date)

    sort_records(df).write_csv(output_path, null_value=MISSING_VALUE)
    logger.info(f"Saved {df.height} records to {output_path}")
    return output_path
