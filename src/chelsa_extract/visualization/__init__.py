"""Plots of the extracted temperature series."""

from chelsa_extract.visualization.plots import (
    plot_annual_trends,
    plot_monthly_distribution,
    write_plots,
)

__all__ = ["plot_annual_trends", "plot_monthly_distribution", "write_plots"]
