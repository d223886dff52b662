"""Tests for summary statistics over the record table."""

import polars as pl
import pytest

from chelsa_extract.data.extraction import RECORD_SCHEMA
from chelsa_extract.data.stats import (
    compute_annual_means,
    compute_missing_by_site,
    compute_missing_summary,
    compute_overall_summary,
    sort_records,
    summarize_by_month,
    summarize_by_site,
    summarize_by_year,
)


def make_records(rows: list[tuple[str, int, int, float | None]]) -> pl.DataFrame:
    """Build a record table from (site_code, year, month, temperature) tuples."""
    return pl.DataFrame(
        {
            "stream": [f"Stream {code}" for code, *_ in rows],
            "site_code": [code for code, *_ in rows],
            "site_name": ["" for _ in rows],
            "x": [9.0 for _ in rows],
            "y": [50.0 for _ in rows],
            "year": [year for _, year, _, _ in rows],
            "month": [month for _, _, month, _ in rows],
            "temperature_c": [temp for *_, temp in rows],
        },
        schema=RECORD_SCHEMA,
    )


@pytest.fixture
def sample_records() -> pl.DataFrame:
    return make_records([
        ("KiO3", 2001, 2, 3.0),
        ("Auba", 2000, 7, 18.0),
        ("Auba", 2000, 1, -1.0),
        ("KiO3", 2000, 1, None),
        ("Auba", 2001, 1, 1.0),
        ("KiO3", 2000, 7, 20.0),
        ("Auba", 2001, 7, None),
        ("KiO3", 2001, 7, 21.0),
    ])


def test_sort_records(sample_records: pl.DataFrame):
    sorted_df = sort_records(sample_records)
    keys = list(zip(sorted_df["site_code"], sorted_df["year"], sorted_df["month"]))
    assert keys == sorted(keys)
    assert keys[0] == ("Auba", 2000, 1)


def test_missing_summary(sample_records: pl.DataFrame):
    summary = compute_missing_summary(sample_records)
    assert summary.total_records == 8
    assert summary.missing_count == 2
    assert summary.missing_pct == pytest.approx(25.0)


def test_missing_summary_empty():
    summary = compute_missing_summary(pl.DataFrame(schema=RECORD_SCHEMA))
    assert summary.total_records == 0
    assert summary.missing_pct == 0.0


def test_missing_by_site(sample_records: pl.DataFrame):
    result = compute_missing_by_site(sample_records)
    assert result["site_code"].to_list() == ["Auba", "KiO3"]
    assert result["n_missing"].to_list() == [1, 1]
    assert result["missing_pct"].to_list() == [25.0, 25.0]


def test_overall_summary(sample_records: pl.DataFrame):
    summary = compute_overall_summary(sample_records)
    assert summary["min"] == -1.0
    assert summary["max"] == 21.0
    assert summary["mean"] == pytest.approx(62.0 / 6)
    assert summary["missing"] == 2


def test_overall_summary_all_missing():
    df = make_records([("Auba", 2000, 1, None)])
    summary = compute_overall_summary(df)
    assert summary["mean"] is None
    assert summary["missing"] == 1


def test_summarize_by_site(sample_records: pl.DataFrame):
    result = summarize_by_site(sample_records)
    auba = result.filter(pl.col("site_code") == "Auba").row(0, named=True)

    assert auba["mean_temp"] == pytest.approx(6.0)
    assert auba["min_temp"] == -1.0
    assert auba["max_temp"] == 18.0
    assert auba["n_records"] == 4
    assert auba["n_missing"] == 1
    assert auba["years_covered"] == "2000-2001"


def test_summarize_by_year(sample_records: pl.DataFrame):
    result = summarize_by_year(sample_records)
    assert result["year"].to_list() == [2000, 2001]

    year_2000 = result.row(0, named=True)
    assert year_2000["n_records"] == 4
    assert year_2000["n_missing"] == 1
    assert year_2000["n_sites"] == 2
    assert year_2000["n_months"] == 2
    assert year_2000["mean_temp"] == pytest.approx(round(37.0 / 3, 2))


def test_summarize_by_month(sample_records: pl.DataFrame):
    result = summarize_by_month(sample_records)
    assert result["month"].to_list() == [1, 2, 7]

    july = result.filter(pl.col("month") == 7).row(0, named=True)
    assert july["n_records"] == 3 + 1
    assert july["min_temp"] == 18.0
    assert july["max_temp"] == 21.0


def test_annual_means(sample_records: pl.DataFrame):
    result = compute_annual_means(sample_records)
    kio3 = result.filter(pl.col("site_code") == "KiO3")

    assert kio3["year"].to_list() == [2000, 2001]
    assert kio3["annual_temp"].to_list() == [pytest.approx(20.0), pytest.approx(12.0)]


def test_annual_means_drop_fully_missing_years():
    df = make_records([("Auba", 2000, 1, None), ("Auba", 2001, 1, 4.0)])
    result = compute_annual_means(df)
    assert result["year"].to_list() == [2001]
