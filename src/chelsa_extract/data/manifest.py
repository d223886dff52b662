"""Manifest reading and filtering.

A manifest is the plain-text path list offered by the CHELSA bulk download,
one URL per line. Selection is a pure predicate over each line's text: the
line must contain the content tag and, somewhere after it, a year token
(``_YYYY_``) inside the requested range.
"""

import logging
import re
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

# Four digits bounded by underscores; the lookahead leaves the trailing
# underscore for the next token so "_2000_2001_" yields both years.
YEAR_TOKEN_PATTERN = re.compile(r"_(\d{4})(?=_)")


def read_manifest(path: Path | str) -> list[str]:
    """Read raw manifest lines from a UTF-8 text file.

    Args:
        path: Path to the manifest file

    Returns:
        Lines without their line terminators, untrimmed

    Raises:
        FileNotFoundError: If the manifest doesn't exist
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        lines = f.read().splitlines()
    logger.info(f"Read {len(lines)} lines from manifest {path}")
    return lines


def extract_year_tokens(line: str) -> list[int]:
    """Return every ``_YYYY_`` year token in a line, in order of appearance.

    Examples:
        >>> extract_year_tokens("CHELSA_tas_01_2000_V.2.1.tif")
        [2000]
        >>> extract_year_tokens("CHELSA_tas_2015.tif")
        []
    """
    return [int(match) for match in YEAR_TOKEN_PATTERN.findall(line)]


def matches_filter(line: str, content_tag: str, start_year: int, end_year: int) -> bool:
    """Check whether a manifest line is selected by the tag and year range.

    The tag is a plain substring, so ``tas`` also selects ``tasmax`` and
    ``tasmin`` paths. Only year tokens after the first occurrence of the tag
    are considered.

    Args:
        line: Manifest line (already trimmed)
        content_tag: Substring identifying the variable, e.g. ``"tas"``
        start_year: First accepted year (inclusive)
        end_year: Last accepted year (inclusive)

    Returns:
        True if the line should be fetched
    """
    tag_index = line.find(content_tag)
    if tag_index < 0:
        return False

    remainder = line[tag_index + len(content_tag):]
    return any(start_year <= year <= end_year for year in extract_year_tokens(remainder))


def filter_manifest(
    lines: Iterable[str],
    content_tag: str,
    start_year: int,
    end_year: int,
) -> list[str]:
    """Select the remote paths to fetch from raw manifest lines.

    Lines are trimmed and empty lines dropped. Manifest order is preserved.
    A line that doesn't match is excluded silently.

    Args:
        lines: Raw manifest lines
        content_tag: Substring identifying the variable
        start_year: First accepted year (inclusive)
        end_year: Last accepted year (inclusive)

    Returns:
        Selected remote paths in manifest order
    """
    selected = []
    total = 0

    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        total += 1
        if matches_filter(line, content_tag, start_year, end_year):
            selected.append(line)

    logger.info(
        f"Selected {len(selected)} of {total} manifest entries "
        f"(tag='{content_tag}', years {start_year}-{end_year})"
    )
    return selected
