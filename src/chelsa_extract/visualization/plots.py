"""Plotly figures for the extracted temperature series."""

import logging
from pathlib import Path

import numpy as np
import plotly.graph_objects as go
import polars as pl

from chelsa_extract.config.paths import ensure_directories
from chelsa_extract.data.extraction import TEMPERATURE_COLUMN
from chelsa_extract.data.stats import compute_annual_means

logger = logging.getLogger(__name__)

MONTHLY_DISTRIBUTION_FILE = "monthly_temperature_by_site.html"
ANNUAL_TRENDS_FILE = "annual_temperature_trends.html"


def _year_span(df: pl.DataFrame) -> str:
    if df.height == 0:
        return ""
    return f" ({df['year'].min()}-{df['year'].max()})"


def plot_monthly_distribution(df: pl.DataFrame) -> go.Figure:
    """Box plot of monthly temperatures, one box per site and month."""
    fig = go.Figure()

    for site_code in sorted(df["site_code"].unique().to_list()):
        site_df = df.filter(
            (pl.col("site_code") == site_code) & pl.col(TEMPERATURE_COLUMN).is_not_null()
        )
        fig.add_trace(go.Box(
            x=site_df["month"].to_list(),
            y=site_df[TEMPERATURE_COLUMN].to_list(),
            name=site_code,
        ))

    fig.update_layout(
        title=f"Monthly Temperature Patterns by Site{_year_span(df)}",
        xaxis_title="Month",
        yaxis_title="Temperature (°C)",
        legend_title="Site code",
        boxmode="group",
        template="plotly_white",
        xaxis={"tickmode": "linear", "dtick": 1},
    )
    return fig


def linear_fit(x: np.ndarray, y: np.ndarray) -> tuple[float, float] | None:
    """Least-squares slope and intercept, or None with fewer than two points."""
    if len(x) < 2 or np.unique(x).size < 2:
        return None
    slope, intercept = np.polyfit(x, y, deg=1)
    return float(slope), float(intercept)


def plot_annual_trends(df: pl.DataFrame) -> go.Figure:
    """Annual mean temperature per site with a linear trend line."""
    annual = compute_annual_means(df)
    fig = go.Figure()

    for site_code in sorted(annual["site_code"].unique().to_list()):
        site_df = annual.filter(pl.col("site_code") == site_code)
        years = site_df["year"].to_numpy().astype(float)
        temps = site_df["annual_temp"].to_numpy()

        fig.add_trace(go.Scatter(
            x=years,
            y=temps,
            mode="markers",
            name=site_code,
            legendgroup=site_code,
            marker={"size": 8},
        ))

        fit = linear_fit(years, temps)
        if fit is None:
            continue
        slope, intercept = fit
        fit_x = np.array([years.min(), years.max()])
        fig.add_trace(go.Scatter(
            x=fit_x,
            y=slope * fit_x + intercept,
            mode="lines",
            name=f"{site_code} trend ({slope * 10:+.2f} °C/decade)",
            legendgroup=site_code,
        ))

    fig.update_layout(
        title=f"Annual Mean Temperature Trends{_year_span(df)}",
        xaxis_title="Year",
        yaxis_title="Annual Mean Temperature (°C)",
        legend_title="Site code",
        template="plotly_white",
        xaxis={"dtick": 2},
    )
    return fig


def save_figure(fig: go.Figure, path: Path) -> Path:
    """Write a figure as a standalone HTML file."""
    path = Path(path)
    ensure_directories(path.parent)
    fig.write_html(str(path), include_plotlyjs="cdn")
    logger.info(f"Saved plot to {path}")
    return path


def write_plots(df: pl.DataFrame, output_dir: Path) -> list[Path]:
    """Render both figures into ``output_dir`` and return their paths."""
    output_dir = Path(output_dir)
    return [
        save_figure(plot_monthly_distribution(df), output_dir / MONTHLY_DISTRIBUTION_FILE),
        save_figure(plot_annual_trends(df), output_dir / ANNUAL_TRENDS_FILE),
    ]
