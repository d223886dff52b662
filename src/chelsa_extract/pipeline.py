"""End-to-end pipeline: filter, download, extract, report.

Each stage is exposed separately so the CLI can run them one at a time.
A ``DownloadAbortedError`` from the download stage propagates out of
``run_pipeline`` and no extraction or reporting takes place.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Optional

import polars as pl
import requests

from chelsa_extract.config.pipeline import PipelineConfig
from chelsa_extract.data.export import write_records_csv
from chelsa_extract.data.extraction import (
    TEMPERATURE_COLUMN,
    ExtractionResult,
    extract_records,
)
from chelsa_extract.data.fetcher import RunContext, fetch_all
from chelsa_extract.data.manifest import filter_manifest, read_manifest
from chelsa_extract.data.stats import sort_records
from chelsa_extract.visualization.plots import write_plots

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything a full run produced."""

    remote_paths: list[str]
    context: RunContext
    extraction: ExtractionResult
    records: pl.DataFrame
    output_path: Optional[Path] = None
    plot_paths: list[Path] = field(default_factory=list)


def select_remote_paths(config: PipelineConfig) -> list[str]:
    """Read the manifest and apply the configured tag and year filter."""
    lines = read_manifest(config.manifest_path)
    return filter_manifest(
        lines,
        content_tag=config.filter.content_tag,
        start_year=config.filter.start_year,
        end_year=config.filter.end_year,
    )


def download(
    config: PipelineConfig,
    remote_paths: list[str],
    context: Optional[RunContext] = None,
    session: Optional[requests.Session] = None,
) -> RunContext:
    """Fetch and validate every selected remote path.

    Raises:
        DownloadAbortedError: When too many consecutive downloads fail
    """
    return fetch_all(remote_paths, config.download, context=context, session=session)


def extract(
    config: PipelineConfig,
    raster_paths: list[Path],
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> ExtractionResult:
    """Sample every raster at every configured site, sorted by site and date."""
    result = extract_records(raster_paths, config.sites, progress_callback=progress_callback)
    result.records = sort_records(result.records)
    return result


def report(
    config: PipelineConfig,
    records: pl.DataFrame,
    run_date: Optional[date] = None,
) -> tuple[Path, list[Path]]:
    """Write the CSV table and, if enabled, the plots.

    Returns:
        Tuple of (csv_path, plot_paths)
    """
    output_path = write_records_csv(records, config.output_dir, run_date=run_date)

    plot_paths: list[Path] = []
    if config.make_plots:
        if records[TEMPERATURE_COLUMN].drop_nulls().len() == 0:
            logger.warning("No temperature values available, skipping plots")
        else:
            plot_paths = write_plots(records, config.output_dir)

    return output_path, plot_paths


def run_pipeline(
    config: PipelineConfig,
    session: Optional[requests.Session] = None,
    run_date: Optional[date] = None,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> PipelineResult:
    """Run all stages in order.

    Args:
        config: Pipeline configuration
        session: Optional HTTP session (a new one is used if omitted)
        run_date: Date embedded in the output file name (default: today)
        progress_callback: Optional callback(current, total, file_name) for extraction

    Returns:
        PipelineResult with the run context, records and written files

    Raises:
        FileNotFoundError: If the manifest doesn't exist
        DownloadAbortedError: When too many consecutive downloads fail
    """
    remote_paths = select_remote_paths(config)
    context = download(config, remote_paths, context=RunContext(), session=session)

    extraction = extract(config, context.validated_files, progress_callback=progress_callback)
    output_path, plot_paths = report(config, extraction.records, run_date=run_date)

    return PipelineResult(
        remote_paths=remote_paths,
        context=context,
        extraction=extraction,
        records=extraction.records,
        output_path=output_path,
        plot_paths=plot_paths,
    )
