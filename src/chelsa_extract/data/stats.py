"""Summary statistics over the extracted temperature records."""

import logging
from dataclasses import dataclass

import polars as pl

from chelsa_extract.data.extraction import TEMPERATURE_COLUMN

logger = logging.getLogger(__name__)

SORT_COLUMNS = ["site_code", "year", "month"]


@dataclass
class MissingSummary:
    """Completeness of the temperature column."""

    total_records: int
    missing_count: int
    missing_pct: float


def sort_records(df: pl.DataFrame) -> pl.DataFrame:
    """Sort records by site code, year and month."""
    return df.sort(SORT_COLUMNS)


def compute_missing_summary(df: pl.DataFrame) -> MissingSummary:
    """Count missing temperatures over all records.

    Args:
        df: Record table

    Returns:
        MissingSummary (percentage is 0.0 for an empty table)
    """
    total = df.height
    missing = df[TEMPERATURE_COLUMN].null_count() if total else 0
    pct = (missing / total * 100) if total > 0 else 0.0
    return MissingSummary(total_records=total, missing_count=missing, missing_pct=pct)


def compute_missing_by_site(df: pl.DataFrame) -> pl.DataFrame:
    """Missing-value count and percentage per site."""
    return (
        df.group_by("site_code")
        .agg([
            pl.len().alias("n_records"),
            pl.col(TEMPERATURE_COLUMN).null_count().alias("n_missing"),
        ])
        .with_columns(
            (pl.col("n_missing") / pl.col("n_records") * 100).round(2).alias("missing_pct")
        )
        .sort("site_code")
    )


def compute_overall_summary(df: pl.DataFrame) -> dict[str, float | int | None]:
    """Five-number summary plus mean and missing count of all temperatures."""
    temps = df[TEMPERATURE_COLUMN].drop_nulls()
    if temps.len() == 0:
        return {
            "min": None,
            "q1": None,
            "median": None,
            "mean": None,
            "q3": None,
            "max": None,
            "missing": df.height,
        }

    return {
        "min": temps.min(),
        "q1": temps.quantile(0.25, interpolation="linear"),
        "median": temps.median(),
        "mean": temps.mean(),
        "q3": temps.quantile(0.75, interpolation="linear"),
        "max": temps.max(),
        "missing": df.height - temps.len(),
    }


def summarize_by_site(df: pl.DataFrame) -> pl.DataFrame:
    """Per-site mean/min/max, record and missing counts, and years covered.

    ``years_covered`` is formatted as ``"START-END"``.
    """
    temp = pl.col(TEMPERATURE_COLUMN)
    return (
        df.group_by("site_code")
        .agg([
            temp.mean().round(2).alias("mean_temp"),
            temp.min().round(2).alias("min_temp"),
            temp.max().round(2).alias("max_temp"),
            pl.len().alias("n_records"),
            temp.null_count().alias("n_missing"),
            pl.col("year").min().alias("first_year"),
            pl.col("year").max().alias("last_year"),
        ])
        .with_columns(
            pl.concat_str(
                [pl.col("first_year"), pl.col("last_year")], separator="-"
            ).alias("years_covered")
        )
        .drop(["first_year", "last_year"])
        .sort("site_code")
    )


def summarize_by_year(df: pl.DataFrame) -> pl.DataFrame:
    """Per-year mean, record and missing counts, distinct sites and months."""
    temp = pl.col(TEMPERATURE_COLUMN)
    return (
        df.group_by("year")
        .agg([
            temp.mean().round(2).alias("mean_temp"),
            pl.len().alias("n_records"),
            temp.null_count().alias("n_missing"),
            pl.col("site_code").n_unique().alias("n_sites"),
            pl.col("month").n_unique().alias("n_months"),
        ])
        .sort("year")
    )


def summarize_by_month(df: pl.DataFrame) -> pl.DataFrame:
    """Per-calendar-month mean/min/max over all years and sites."""
    temp = pl.col(TEMPERATURE_COLUMN)
    return (
        df.group_by("month")
        .agg([
            temp.mean().round(2).alias("mean_temp"),
            temp.min().round(2).alias("min_temp"),
            temp.max().round(2).alias("max_temp"),
            pl.len().alias("n_records"),
        ])
        .sort("month")
    )


def compute_annual_means(df: pl.DataFrame) -> pl.DataFrame:
    """Annual mean temperature per site, ignoring missing months.

    Years where every month is missing for a site are dropped.
    """
    return (
        df.group_by(["year", "site_code"])
        .agg(pl.col(TEMPERATURE_COLUMN).mean().alias("annual_temp"))
        .filter(pl.col("annual_temp").is_not_null())
        .sort(["site_code", "year"])
    )
