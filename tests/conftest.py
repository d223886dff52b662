"""Shared fixtures: an in-memory HTTP session and small GeoTIFF writers."""

from pathlib import Path

import numpy as np
import pytest
import rasterio
import requests
from rasterio.transform import from_origin

from chelsa_extract.config.download import DownloadSettings
from chelsa_extract.config.sites import SamplingSite

BASE_URL = "https://os.zhdk.cloud.switch.ch/chelsav2/GLOBAL/monthly"


def chelsa_url(month: int, year: int, variable: str = "tas") -> str:
    return f"{BASE_URL}/{variable}/CHELSA_{variable}_{month:02d}_{year}_V.2.1.tif"


def tiff_payload(size: int, signature: bytes = b"II*\x00") -> bytes:
    """Bytes of the given size starting with a TIFF header."""
    return signature + b"\x00" * (size - len(signature))


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, content: bytes = b"", status_code: int = 200, headers: dict | None = None):
        self.content = content
        self.status_code = status_code
        self.headers = headers or {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size: int = 1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info) -> bool:
        return False


class FakeSession:
    """Serves files from a dict and records every request made.

    Args:
        files: URL -> body bytes; unknown URLs get a 404
        head_sizes: URL -> Content-Length to report on HEAD (None = omit header);
            defaults to the real body length
        broken_urls: URLs whose GET raises a connection error
    """

    def __init__(
        self,
        files: dict[str, bytes] | None = None,
        head_sizes: dict[str, int | None] | None = None,
        broken_urls: set[str] | None = None,
    ):
        self.files = files or {}
        self.head_sizes = head_sizes or {}
        self.broken_urls = broken_urls or set()
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def head(self, url: str, allow_redirects: bool = True, timeout: float | None = None):
        self.calls.append(("HEAD", url))
        if url not in self.files:
            return FakeResponse(status_code=404)
        size = self.head_sizes.get(url, len(self.files[url]))
        headers = {} if size is None else {"content-length": str(size)}
        return FakeResponse(headers=headers)

    def get(self, url: str, stream: bool = False, timeout: float | None = None):
        self.calls.append(("GET", url))
        if url in self.broken_urls:
            raise requests.exceptions.ConnectionError(f"Connection reset for {url}")
        if url not in self.files:
            return FakeResponse(status_code=404)
        body = self.files[url]
        return FakeResponse(content=body, headers={"content-length": str(len(body))})

    def close(self) -> None:
        self.closed = True

    def urls_requested(self) -> set[str]:
        return {url for _, url in self.calls}


def write_geotiff(
    path: Path,
    data: np.ndarray,
    west: float = 0.0,
    north: float = 4.0,
    resolution: float = 1.0,
    nodata: float | None = None,
) -> Path:
    """Write a single-band EPSG:4326 GeoTIFF."""
    height, width = data.shape
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype=data.dtype,
        crs="EPSG:4326",
        transform=from_origin(west, north, resolution, resolution),
        nodata=nodata,
    ) as dst:
        dst.write(data, 1)
    return path


@pytest.fixture
def download_settings(tmp_path: Path) -> DownloadSettings:
    """Settings with a small size threshold, no pacing delay and no progress bars."""
    return DownloadSettings(
        data_dir=tmp_path / "CHELSA_data",
        min_file_size=100,
        pacing_delay_seconds=0.0,
        show_progress=False,
    )


@pytest.fixture
def grid_sites() -> list[SamplingSite]:
    """Two sites at cell centres of a 4x4 one-degree grid anchored at (0, 4)."""
    return [
        SamplingSite(stream="North", site_code="N1", site_name="top left", x=0.5, y=3.5),
        SamplingSite(stream="South", site_code="S1", site_name="centre", x=2.5, y=1.5),
    ]


@pytest.fixture
def grid_data() -> np.ndarray:
    """4x4 int16 grid whose values are 2800 + row * 4 + col."""
    return (np.arange(16, dtype=np.int16) + 2800).reshape(4, 4)
