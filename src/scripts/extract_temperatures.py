#!/usr/bin/env python3
"""CLI for downloading CHELSA temperature grids and extracting site time series.

Usage:
    python extract_temperatures.py run                          # Full pipeline with defaults
    python extract_temperatures.py run --years 2000:2019        # Year range
    python extract_temperatures.py run --config pipeline.yaml   # Settings from file
    python extract_temperatures.py run --max-failures 5         # Tolerate transient errors
    python extract_temperatures.py download                     # Fetch and validate only
    python extract_temperatures.py extract                      # Use files already downloaded
    python extract_temperatures.py sites                        # Show sampling sites
    python extract_temperatures.py config -o pipeline.yaml      # Save effective settings
"""

import logging
from pathlib import Path
from typing import Optional

import polars as pl
import typer
from pydantic import ValidationError
from rich.table import Table

from chelsa_extract.config.pipeline import ManifestFilterConfig, PipelineConfig
from chelsa_extract.data.fetcher import REMEDIATION_CHECKS, DownloadAbortedError, RunContext
from chelsa_extract.data.stats import (
    compute_missing_by_site,
    compute_missing_summary,
    compute_overall_summary,
    summarize_by_month,
    summarize_by_site,
    summarize_by_year,
)
from chelsa_extract.pipeline import download, extract, report, select_remote_paths
from chelsa_extract.utils.filesystem import format_bytes, get_total_size_bytes, list_raster_files
from chelsa_extract.utils.parsing import parse_site_filter, parse_year_range
from chelsa_extract.utils.progress import (
    console,
    create_processing_progress,
    print_dataframe,
    print_error,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
    status_spinner,
)

app = typer.Typer(help="Download CHELSA monthly temperature grids and extract site values.")
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else (logging.WARNING if quiet else logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_config(
    config_file: Optional[Path],
    manifest: Optional[Path] = None,
    data_dir: Optional[Path] = None,
    output_dir: Optional[Path] = None,
    tag: Optional[str] = None,
    years: Optional[str] = None,
    max_failures: Optional[int] = None,
    verify_existing: Optional[bool] = None,
    plots: Optional[bool] = None,
    sites: Optional[str] = None,
) -> PipelineConfig:
    """Load the pipeline config (file or defaults) and apply CLI overrides."""
    try:
        config = PipelineConfig.from_file(config_file) if config_file else PipelineConfig()

        if manifest is not None:
            config.manifest_path = manifest
        if data_dir is not None:
            config.download.data_dir = data_dir
        if output_dir is not None:
            config.output_dir = output_dir
        if tag is not None or years is not None:
            start_year, end_year = (
                parse_year_range(years)
                if years
                else (config.filter.start_year, config.filter.end_year)
            )
            config.filter = ManifestFilterConfig(
                content_tag=tag or config.filter.content_tag,
                start_year=start_year,
                end_year=end_year,
            )
        if max_failures is not None:
            config.download.max_consecutive_failures = max_failures
        if verify_existing is not None:
            config.download.verify_existing_signature = verify_existing
        if plots is not None:
            config.make_plots = plots

        site_codes = parse_site_filter(sites)
        if site_codes:
            unknown = sorted(set(site_codes) - {site.site_code for site in config.sites})
            if unknown:
                raise ValueError(f"Unknown site codes: {', '.join(unknown)}")
            config.sites = [site for site in config.sites if site.site_code in site_codes]
    except (ValidationError, ValueError, FileNotFoundError) as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(2)

    return config


def print_download_abort(error: DownloadAbortedError) -> None:
    """Print the critical diagnostic for an aborted download run."""
    console.print("\n[bold red]!!! CRITICAL ERROR !!![/bold red]")
    console.print(
        f"Too many consecutive download failures ({error.context.consecutive_failures})"
    )
    console.print("This suggests a systematic problem (network, server, or authentication)")
    console.print("Failed files:")
    for failed_file in error.failed_files:
        console.print(f"  - {failed_file}")
    console.print("\nStopping download process to prevent further issues.")
    console.print("Please check:")
    for i, check in enumerate(REMEDIATION_CHECKS, start=1):
        console.print(f"  {i}. {check}")


def run_download(config: PipelineConfig) -> RunContext:
    """Filter the manifest and fetch every selected file, exiting 1 on abort."""
    try:
        remote_paths = select_remote_paths(config)
    except FileNotFoundError:
        print_error(f"Manifest not found: {config.manifest_path}")
        raise typer.Exit(1)

    if not remote_paths:
        print_warning("No manifest entries match the filter")
        raise typer.Exit(1)

    print_info(f"Selected {len(remote_paths)} files")
    for remote_path in remote_paths[:5]:
        console.print(f"  [dim]{remote_path}[/dim]")
    if len(remote_paths) > 5:
        console.print(f"  [dim]... and {len(remote_paths) - 5} more[/dim]")

    console.print("\n[bold]Downloading CHELSA files...[/bold]")
    context = RunContext()
    try:
        download(config, remote_paths, context=context)
    except DownloadAbortedError as e:
        print_download_abort(e)
        raise typer.Exit(1)

    print_summary_table("Download Summary", {
        "Files available": len(context.validated_files),
        "Downloaded this run": context.downloaded,
        "Already present": context.skipped,
        "Failed downloads": len(context.failed_files),
        "Bytes downloaded": format_bytes(context.downloaded_bytes),
        "Local store size": format_bytes(get_total_size_bytes(context.validated_files)),
        "Data directory": str(config.download.data_dir),
    })
    return context


def run_extract_and_report(config: PipelineConfig, raster_paths: list[Path]) -> None:
    """Extract records, write outputs and print summaries."""
    if not raster_paths:
        print_warning("No raster files to process")
        raise typer.Exit(1)

    console.print("\n[bold]Extracting temperatures at sampling sites...[/bold]")
    with create_processing_progress() as progress:
        task_id = progress.add_task("Extracting", total=len(raster_paths))

        def progress_callback(current: int, total: int, file_name: str) -> None:
            progress.update(task_id, completed=current, description=f"Processing {file_name}")

        extraction = extract(config, raster_paths, progress_callback=progress_callback)

    for file_name in extraction.skipped_files:
        print_warning(f"Could not extract date from {file_name}")
    for file_name in extraction.failed_files:
        print_warning(f"Could not read raster {file_name}; values recorded as missing")

    records = extraction.records
    if records.height == 0:
        print_warning("No records extracted")
        raise typer.Exit(1)

    with status_spinner("Writing outputs..."):
        output_path, plot_paths = report(config, records)

    print_results(records)
    print_success(f"Saved {records.height} records to {output_path}")
    for plot_path in plot_paths:
        print_success(f"Saved plot {plot_path}")


def print_results(records: pl.DataFrame) -> None:
    """Print data quality and grouped summaries."""
    missing = compute_missing_summary(records)
    print_summary_table("Data Quality", {
        "Total records": missing.total_records,
        "Missing temperature values": missing.missing_count,
        "Missing data percentage": f"{missing.missing_pct:.2f}%",
    })
    print_dataframe("Missing Values by Site", compute_missing_by_site(records))

    overall = compute_overall_summary(records)
    print_summary_table("Temperature Summary (°C)", {
        key: "NA" if value is None else (f"{value:.2f}" if isinstance(value, float) else value)
        for key, value in overall.items()
    })

    print_dataframe("Summary by Site", summarize_by_site(records))
    print_dataframe("Summary by Year", summarize_by_year(records))
    print_dataframe("Monthly Patterns", summarize_by_month(records))


@app.command()
def run(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Pipeline config file (YAML or JSON)"
    ),
    manifest: Optional[Path] = typer.Option(
        None, "--manifest", "-m", help="Manifest of remote paths (default: envidatS3paths.txt)"
    ),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Download directory"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Output directory"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Content tag (e.g. 'tas')"),
    years: Optional[str] = typer.Option(
        None, "--years", "-y", help="Inclusive year range (e.g. '2000:2019')"
    ),
    sites: Optional[str] = typer.Option(
        None, "--sites", "-s", help="Comma-separated site codes to sample"
    ),
    max_failures: Optional[int] = typer.Option(
        None, "--max-failures", help="Consecutive failures that abort the run", min=1
    ),
    verify_existing: Optional[bool] = typer.Option(
        None,
        "--verify-existing/--no-verify-existing",
        help="Check the TIFF signature of files kept from earlier runs",
    ),
    plots: Optional[bool] = typer.Option(None, "--plots/--no-plots", help="Write HTML plots"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Quiet output"),
) -> None:
    """Run the full pipeline: filter, download, extract and report."""
    setup_logging(verbose, quiet)
    config = build_config(
        config_file, manifest, data_dir, output_dir, tag, years,
        max_failures, verify_existing, plots, sites,
    )

    context = run_download(config)
    run_extract_and_report(config, context.validated_files)


@app.command("download")
def download_command(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Pipeline config file (YAML or JSON)"
    ),
    manifest: Optional[Path] = typer.Option(None, "--manifest", "-m", help="Manifest of remote paths"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Download directory"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Content tag (e.g. 'tas')"),
    years: Optional[str] = typer.Option(None, "--years", "-y", help="Inclusive year range"),
    max_failures: Optional[int] = typer.Option(
        None, "--max-failures", help="Consecutive failures that abort the run", min=1
    ),
    verify_existing: Optional[bool] = typer.Option(
        None, "--verify-existing/--no-verify-existing", help="Re-check existing files"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Quiet output"),
) -> None:
    """Filter the manifest and download/validate the selected files."""
    setup_logging(verbose, quiet)
    config = build_config(
        config_file, manifest, data_dir, None, tag, years, max_failures, verify_existing,
    )
    run_download(config)


@app.command("extract")
def extract_command(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Pipeline config file (YAML or JSON)"
    ),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Directory of rasters"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Output directory"),
    sites: Optional[str] = typer.Option(None, "--sites", "-s", help="Comma-separated site codes"),
    plots: Optional[bool] = typer.Option(None, "--plots/--no-plots", help="Write HTML plots"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Quiet output"),
) -> None:
    """Extract and report from rasters already in the data directory."""
    setup_logging(verbose, quiet)
    config = build_config(
        config_file, data_dir=data_dir, output_dir=output_dir, plots=plots, sites=sites,
    )
    raster_paths = list_raster_files(config.download.data_dir)
    print_info(f"Found {len(raster_paths)} raster files in {config.download.data_dir}")
    run_extract_and_report(config, raster_paths)


@app.command("config")
def config_command(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Pipeline config file to start from (YAML or JSON)"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the config here (.json or YAML); default: print YAML"
    ),
    manifest: Optional[Path] = typer.Option(None, "--manifest", "-m", help="Manifest of remote paths"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Download directory"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Content tag (e.g. 'tas')"),
    years: Optional[str] = typer.Option(None, "--years", "-y", help="Inclusive year range"),
    sites: Optional[str] = typer.Option(None, "--sites", "-s", help="Comma-separated site codes"),
    max_failures: Optional[int] = typer.Option(
        None, "--max-failures", help="Consecutive failures that abort the run", min=1
    ),
) -> None:
    """Show or save the effective pipeline configuration."""
    config = build_config(
        config_file, manifest, data_dir, None, tag, years, max_failures, sites=sites,
    )

    if output is None:
        typer.echo(config.to_yaml())
        return

    config.to_file(output)
    print_success(f"Saved configuration to {output}")


@app.command("sites")
def sites_command(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Pipeline config file (YAML or JSON)"
    ),
) -> None:
    """Show the configured sampling sites."""
    config = build_config(config_file)

    table = Table(title="Sampling Sites")
    table.add_column("Stream", style="cyan")
    table.add_column("Code", style="bold")
    table.add_column("Name")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Alt X", justify="right", style="dim")
    table.add_column("Alt Y", justify="right", style="dim")

    for site in config.sites:
        table.add_row(
            site.stream,
            site.site_code,
            site.site_name,
            f"{site.x:.6f}",
            f"{site.y:.6f}",
            f"{site.alt_x:.2f}" if site.alt_x is not None else "",
            f"{site.alt_y:.2f}" if site.alt_y is not None else "",
        )

    console.print(table)


if __name__ == "__main__":
    app()
