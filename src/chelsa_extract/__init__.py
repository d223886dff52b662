"""Download CHELSA monthly temperature grids and extract site time series."""

__version__ = "0.1.0"
