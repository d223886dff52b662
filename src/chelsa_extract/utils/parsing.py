"""Parsing utilities for command-line arguments."""

import logging

logger = logging.getLogger(__name__)


def parse_year_range(year_range_str: str) -> tuple[int, int]:
    """Parse an inclusive year range such as ``"2000:2019"``.

    A single year (``"2015"``) is a one-year range.

    Args:
        year_range_str: ``"START:END"`` or ``"YEAR"``

    Returns:
        Tuple of (start_year, end_year)

    Raises:
        ValueError: If the string is malformed or start > end

    Examples:
        >>> parse_year_range("2000:2019")
        (2000, 2019)
        >>> parse_year_range("2015")
        (2015, 2015)
    """
    parts = [part.strip() for part in year_range_str.split(":")]

    if len(parts) == 1:
        year = int(parts[0])
        return year, year

    if len(parts) != 2:
        raise ValueError(f"Invalid year range format: {year_range_str!r} (expected START:END)")

    start, end = int(parts[0]), int(parts[1])
    if start > end:
        raise ValueError(f"Invalid year range: {year_range_str!r} (start > end)")

    return start, end


def parse_site_filter(site_filter_str: str | None) -> list[str]:
    """Parse a comma-separated list of site codes.

    Examples:
        >>> parse_site_filter("Auba, KiO3")
        ['Auba', 'KiO3']
        >>> parse_site_filter(None)
        []
    """
    if not site_filter_str:
        return []

    codes = []
    for code in site_filter_str.split(","):
        code = code.strip()
        if code:
            codes.append(code)

    return codes
