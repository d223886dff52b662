"""Tests for CSV export and plot construction."""

from datetime import date
from pathlib import Path

import numpy as np
import polars as pl
import pytest

from chelsa_extract.data.export import output_filename, write_records_csv
from chelsa_extract.visualization.plots import (
    ANNUAL_TRENDS_FILE,
    MONTHLY_DISTRIBUTION_FILE,
    linear_fit,
    plot_annual_trends,
    plot_monthly_distribution,
    write_plots,
)

from test_stats import make_records


@pytest.fixture
def records() -> pl.DataFrame:
    rows = []
    for site, offset in (("Auba", 0.0), ("Bieb", 1.0)):
        for year in (2000, 2001, 2002):
            for month in (1, 7):
                temp = None if (site, year, month) == ("Bieb", 2001, 1) else offset + year - 2000 + month
                rows.append((site, year, month, temp))
    return make_records(rows)


def test_output_filename_embeds_date():
    assert output_filename(date(2025, 8, 4)) == "CHELSA_temperature_data_20250804.csv"


def test_write_records_csv(tmp_path: Path, records: pl.DataFrame):
    shuffled = records.sample(fraction=1.0, shuffle=True, seed=3)

    path = write_records_csv(shuffled, tmp_path / "out", run_date=date(2025, 8, 4))

    assert path == tmp_path / "out" / "CHELSA_temperature_data_20250804.csv"
    lines = path.read_text().splitlines()
    assert lines[0] == "stream,site_code,site_name,x,y,year,month,temperature_c"
    assert len(lines) == records.height + 1
    assert sum(line.endswith(",NA") for line in lines) == 1

    loaded = pl.read_csv(path, null_values="NA")
    assert loaded["site_code"].to_list() == sorted(loaded["site_code"].to_list())
    assert loaded.row(0, named=True)["year"] == 2000


def test_linear_fit():
    slope, intercept = linear_fit(np.array([2000.0, 2001.0, 2002.0]), np.array([1.0, 2.0, 3.0]))
    assert slope == pytest.approx(1.0)
    assert intercept == pytest.approx(-1999.0)


def test_linear_fit_needs_two_years():
    assert linear_fit(np.array([2000.0]), np.array([1.0])) is None


def test_plot_monthly_distribution(records: pl.DataFrame):
    fig = plot_monthly_distribution(records)

    assert [trace.name for trace in fig.data] == ["Auba", "Bieb"]
    assert len(fig.data[1].y) == 5
    assert "2000-2002" in fig.layout.title.text


def test_plot_annual_trends(records: pl.DataFrame):
    fig = plot_annual_trends(records)

    # markers + trend line per site
    assert len(fig.data) == 4
    trend = fig.data[1]
    assert trend.mode == "lines"
    assert trend.name.startswith("Auba trend")
    assert list(trend.y) == [pytest.approx(4.0), pytest.approx(6.0)]


def test_write_plots(tmp_path: Path, records: pl.DataFrame):
    paths = write_plots(records, tmp_path)

    assert [p.name for p in paths] == [MONTHLY_DISTRIBUTION_FILE, ANNUAL_TRENDS_FILE]
    assert all(p.exists() and p.stat().st_size > 0 for p in paths)
