"""End-to-end tests: manifest to CSV, with downloads served from memory."""

from datetime import date
from pathlib import Path

import polars as pl
import pytest

from chelsa_extract.config.download import DownloadSettings
from chelsa_extract.config.pipeline import ManifestFilterConfig, PipelineConfig
from chelsa_extract.config.sites import SamplingSite
from chelsa_extract.data import fetcher
from chelsa_extract.data.fetcher import DownloadAbortedError
from chelsa_extract.pipeline import run_pipeline, select_remote_paths

from conftest import FakeSession, chelsa_url, write_geotiff

RUN_DATE = date(2025, 8, 4)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(fetcher.time, "sleep", lambda seconds: None)


@pytest.fixture
def manifest(tmp_path: Path) -> Path:
    path = tmp_path / "envidatS3paths.txt"
    path.write_text(
        "\n".join([
            chelsa_url(1, 1999),
            chelsa_url(1, 2000),
            "",
            chelsa_url(2, 2000),
            chelsa_url(1, 2000, variable="pr"),
            chelsa_url(1, 2001),
        ])
        + "\n"
    )
    return path


@pytest.fixture
def served_files(tmp_path: Path, grid_data) -> dict[str, bytes]:
    """Real GeoTIFF bytes for the two January/February 2000 grids."""
    source = tmp_path / "source"
    source.mkdir()
    files = {}
    for month, offset in ((1, 0), (2, 10)):
        raster = write_geotiff(
            source / f"CHELSA_tas_{month:02d}_2000_V.2.1.tif", grid_data + offset
        )
        files[chelsa_url(month, 2000)] = raster.read_bytes()
    return files


@pytest.fixture
def config(
    tmp_path: Path,
    manifest: Path,
    download_settings: DownloadSettings,
    grid_sites: list[SamplingSite],
) -> PipelineConfig:
    return PipelineConfig(
        manifest_path=manifest,
        output_dir=tmp_path / "output",
        filter=ManifestFilterConfig(content_tag="tas", start_year=2000, end_year=2000),
        download=download_settings,
        sites=grid_sites,
    )


def test_select_remote_paths(config: PipelineConfig):
    assert select_remote_paths(config) == [chelsa_url(1, 2000), chelsa_url(2, 2000)]


def test_full_run(config: PipelineConfig, served_files: dict[str, bytes]):
    session = FakeSession(files=served_files)

    result = run_pipeline(config, session=session, run_date=RUN_DATE)

    assert result.context.downloaded == 2
    assert result.records.height == 2 * 2
    assert result.output_path == config.output_dir / "CHELSA_temperature_data_20250804.csv"
    assert len(result.plot_paths) == 2
    assert all(path.exists() for path in result.plot_paths)

    table = pl.read_csv(result.output_path, null_values="NA")
    assert table["site_code"].to_list() == ["N1", "N1", "S1", "S1"]
    assert table["month"].to_list() == [1, 2, 1, 2]
    assert table["temperature_c"].to_list() == [
        pytest.approx(2800 * 0.1 - 273.15),
        pytest.approx(2810 * 0.1 - 273.15),
        pytest.approx(2810 * 0.1 - 273.15),
        pytest.approx(2820 * 0.1 - 273.15),
    ]


def test_rerun_reuses_downloads(config: PipelineConfig, served_files: dict[str, bytes]):
    run_pipeline(config, session=FakeSession(files=served_files), run_date=RUN_DATE)

    second = FakeSession(files=served_files)
    result = run_pipeline(config, session=second, run_date=RUN_DATE)

    assert second.calls == []
    assert result.context.skipped == 2
    assert result.records.height == 4


def test_abort_writes_nothing(config: PipelineConfig, served_files: dict[str, bytes]):
    """An aborted download run stops before extraction and reporting."""
    del served_files[chelsa_url(1, 2000)]
    session = FakeSession(files=served_files)

    with pytest.raises(DownloadAbortedError):
        run_pipeline(config, session=session, run_date=RUN_DATE)

    assert chelsa_url(2, 2000) not in session.urls_requested()
    assert not config.output_dir.exists()


def test_missing_manifest(config: PipelineConfig, tmp_path: Path):
    config.manifest_path = tmp_path / "missing.txt"
    with pytest.raises(FileNotFoundError):
        run_pipeline(config, session=FakeSession())


def test_all_missing_values_skip_plots(config: PipelineConfig, served_files: dict[str, bytes]):
    config.sites = [SamplingSite(stream="Far", site_code="FAR", x=50.0, y=50.0)]

    result = run_pipeline(config, session=FakeSession(files=served_files), run_date=RUN_DATE)

    assert result.records.height == 2
    assert result.records["temperature_c"].null_count() == 2
    assert result.output_path.exists()
    assert result.plot_paths == []


def test_plots_disabled(config: PipelineConfig, served_files: dict[str, bytes]):
    config.make_plots = False

    result = run_pipeline(config, session=FakeSession(files=served_files), run_date=RUN_DATE)

    assert result.plot_paths == []
    assert [p.name for p in config.output_dir.iterdir()] == [result.output_path.name]
