"""Sequential, resumable downloader for CHELSA GeoTIFF files.

Each remote path maps to exactly one local file named by the URL basename.
A local file that is already large enough is reused without touching the
network, which makes interrupted runs resumable. Fresh downloads are checked
against a minimum size, the server-reported size and the TIFF signature
before they are accepted.

``fetch_one`` never raises for a failed download; it returns a ``FetchResult``
and ``fetch_all`` decides, from the consecutive failure count kept in the
``RunContext``, whether to stop the whole run.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import unquote, urlparse

import requests
from tqdm import tqdm

from chelsa_extract.config.download import DownloadSettings
from chelsa_extract.config.paths import ensure_directories
from chelsa_extract.data.integrity import (
    FetchErrorKind,
    has_tiff_signature,
    validate_artifact,
)
from chelsa_extract.utils.filesystem import format_bytes, remove_if_exists

logger = logging.getLogger(__name__)

REMEDIATION_CHECKS = (
    "Your internet connection",
    "The CHELSA server status",
    "The manifest file format",
    "Available disk space",
)


class FetchStatus(str, Enum):
    """What happened to a single remote path."""

    SKIPPED_EXISTING = "skipped_existing"
    DOWNLOADED = "downloaded"
    FAILED = "failed"


@dataclass
class FetchResult:
    """Outcome of fetching one remote path."""

    remote_path: str
    local_path: Optional[Path]
    status: FetchStatus
    size: int | None = None
    error_kind: FetchErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status != FetchStatus.FAILED

    @property
    def name(self) -> str:
        """Local file name, or the raw remote path when it has none."""
        return self.local_path.name if self.local_path is not None else self.remote_path


@dataclass
class RunContext:
    """Mutable state of one download run.

    Owned by the caller and passed to ``fetch_all``; nothing here is global.
    """

    consecutive_failures: int = 0
    validated_files: list[Path] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)
    attempted: int = 0
    downloaded: int = 0
    skipped: int = 0
    downloaded_bytes: int = 0

    def record_success(self, path: Path, size: int = 0) -> None:
        self.attempted += 1
        self.downloaded += 1
        self.downloaded_bytes += size
        self.validated_files.append(path)
        self.consecutive_failures = 0

    def record_skip(self, path: Path) -> None:
        self.attempted += 1
        self.skipped += 1
        self.validated_files.append(path)
        self.consecutive_failures = 0

    def record_failure(self, name: str) -> None:
        self.attempted += 1
        self.failed_files.append(name)
        self.consecutive_failures += 1

    def record_result(self, result: FetchResult) -> None:
        """Update counters and file lists from a fetch result."""
        if result.status == FetchStatus.FAILED:
            self.record_failure(result.name)
        elif result.status == FetchStatus.DOWNLOADED:
            self.record_success(result.local_path, result.size or 0)
        else:
            self.record_skip(result.local_path)

    def should_abort(self, threshold: int) -> bool:
        """True once the consecutive failure count reaches the threshold."""
        return self.consecutive_failures >= threshold

    def recent_failures(self, count: int) -> list[str]:
        """Names of the most recent ``count`` failed files."""
        if count <= 0:
            return []
        return self.failed_files[-count:]


class DownloadAbortedError(RuntimeError):
    """Raised when consecutive download failures reach the configured threshold."""

    def __init__(self, context: RunContext, failed_files: list[str]):
        self.context = context
        self.failed_files = failed_files
        super().__init__(
            f"Download process terminated after {context.consecutive_failures} "
            f"consecutive failure(s): {', '.join(failed_files)}"
        )


def local_path_for(remote_path: str, data_dir: Path) -> Path:
    """Map a remote URL to its local file by the final path segment.

    Query strings and fragments are ignored.

    Raises:
        ValueError: If the URL has no file name (e.g. ends with "/")

    Examples:
        >>> local_path_for("https://host/chelsav2/CHELSA_tas_01_2000_V.2.1.tif", Path("data"))
        PosixPath('data/CHELSA_tas_01_2000_V.2.1.tif')
    """
    url_path = unquote(urlparse(remote_path).path)
    name = url_path.rsplit("/", 1)[-1]
    if not name:
        raise ValueError(f"Remote path has no file name: {remote_path}")
    return Path(data_dir) / name


def create_session(settings: DownloadSettings) -> requests.Session:
    """Create an HTTP session with the configured user agent."""
    session = requests.Session()
    session.headers.update({"User-Agent": settings.user_agent})
    return session


def parse_content_length(value: Optional[str]) -> Optional[int]:
    """Parse a ``Content-Length`` header value.

    Missing, non-numeric and non-positive values give None.

    Examples:
        >>> parse_content_length("1024")
        1024
        >>> parse_content_length("unknown") is None
        True
    """
    if value is None:
        return None
    try:
        size = int(value)
    except ValueError:
        logger.debug(f"Ignoring non-numeric Content-Length: {value!r}")
        return None
    return size if size > 0 else None


def probe_expected_size(
    session: requests.Session,
    url: str,
    timeout: float,
) -> Optional[int]:
    """Ask the server for the size of a file, best-effort.

    Returns:
        The ``Content-Length`` in bytes, or None if unavailable
    """
    try:
        response = session.head(url, allow_redirects=True, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.debug(f"Could not determine expected size for {url}: {e}")
        return None

    return parse_content_length(response.headers.get("content-length"))


def _stream_to_file(
    session: requests.Session,
    url: str,
    dest_path: Path,
    settings: DownloadSettings,
    expected_size: Optional[int],
) -> int:
    """Stream a URL to a local file in binary mode and return bytes written."""
    bytes_written = 0

    with session.get(url, stream=True, timeout=settings.timeout_seconds) as response:
        response.raise_for_status()
        total_size = expected_size or parse_content_length(response.headers.get("content-length"))

        with open(dest_path, "wb") as f:
            with tqdm(
                desc=dest_path.name,
                total=total_size or None,
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
                leave=False,
                disable=not settings.show_progress,
            ) as pbar:
                for chunk in response.iter_content(chunk_size=settings.chunk_size):
                    if chunk:
                        f.write(chunk)
                        bytes_written += len(chunk)
                        pbar.update(len(chunk))

    return bytes_written


def _existing_file_is_valid(local_path: Path, settings: DownloadSettings) -> tuple[bool, int]:
    size = local_path.stat().st_size
    if size <= settings.min_file_size:
        return False, size
    if settings.verify_existing_signature and not has_tiff_signature(local_path):
        return False, size
    return True, size


def fetch_one(
    remote_path: str,
    settings: DownloadSettings,
    session: requests.Session,
) -> FetchResult:
    """Ensure a validated local copy of one remote file exists.

    A local file larger than ``min_file_size`` is accepted as is (with a
    signature check too when ``verify_existing_signature`` is set) and no
    request is made. Otherwise any corrupt local copy is removed, the file is
    downloaded and validated. A rejected download is deleted from disk.

    Args:
        remote_path: URL to fetch
        settings: Download settings
        session: HTTP session used for the HEAD probe and the download

    Returns:
        FetchResult describing the outcome; failures are returned, not raised
    """
    try:
        local_path = local_path_for(remote_path, settings.data_dir)
    except ValueError as e:
        logger.error(f"Cannot download {remote_path}: {e}")
        return FetchResult(
            remote_path=remote_path,
            local_path=None,
            status=FetchStatus.FAILED,
            error_kind=FetchErrorKind.INVALID_PATH,
            message=str(e),
        )
    name = local_path.name

    if local_path.exists():
        is_valid, size = _existing_file_is_valid(local_path, settings)
        if is_valid:
            logger.info(f"File already exists: {name} ({format_bytes(size)})")
            return FetchResult(
                remote_path=remote_path,
                local_path=local_path,
                status=FetchStatus.SKIPPED_EXISTING,
                size=size,
            )
        logger.warning(f"File exists but appears corrupted, re-downloading: {name}")
        local_path.unlink()

    expected_size = probe_expected_size(session, remote_path, settings.timeout_seconds)
    if expected_size is not None:
        logger.debug(f"Expected size for {name}: {format_bytes(expected_size)}")

    try:
        _stream_to_file(session, remote_path, local_path, settings, expected_size)
    except (requests.exceptions.RequestException, OSError) as e:
        remove_if_exists(local_path)
        logger.error(f"Error downloading {name}: {e}")
        return FetchResult(
            remote_path=remote_path,
            local_path=local_path,
            status=FetchStatus.FAILED,
            error_kind=FetchErrorKind.NETWORK,
            message=str(e),
        )

    validation = validate_artifact(
        local_path,
        expected_size=expected_size,
        min_size=settings.min_file_size,
        tolerance=settings.size_tolerance,
    )
    if not validation.ok:
        remove_if_exists(local_path)
        logger.error(f"Error downloading {name}: {validation.message}")
        return FetchResult(
            remote_path=remote_path,
            local_path=local_path,
            status=FetchStatus.FAILED,
            size=validation.size,
            error_kind=validation.kind,
            message=validation.message,
        )

    logger.info(f"Successfully downloaded: {name} ({format_bytes(validation.size or 0)})")
    return FetchResult(
        remote_path=remote_path,
        local_path=local_path,
        status=FetchStatus.DOWNLOADED,
        size=validation.size,
    )


def fetch_all(
    remote_paths: Iterable[str],
    settings: DownloadSettings,
    context: Optional[RunContext] = None,
    session: Optional[requests.Session] = None,
) -> RunContext:
    """Fetch every remote path in order, stopping on repeated failures.

    Args:
        remote_paths: Filtered remote paths, fetched strictly in this order
        settings: Download settings
        context: Run state to update; a new one is created if omitted
        session: HTTP session; one is created (and closed) if omitted

    Returns:
        The run context; ``validated_files`` keeps the input order

    Raises:
        DownloadAbortedError: When ``max_consecutive_failures`` is reached.
            No further paths are attempted.
    """
    context = context if context is not None else RunContext()
    paths = list(remote_paths)
    total = len(paths)

    ensure_directories(Path(settings.data_dir))

    owns_session = session is None
    if session is None:
        session = create_session(settings)

    try:
        for i, remote_path in enumerate(paths, start=1):
            logger.info(f"Processing ({i}/{total}): {remote_path.rsplit('/', 1)[-1]}")
            result = fetch_one(remote_path, settings, session)
            context.record_result(result)

            if not result.ok:
                if context.should_abort(settings.max_consecutive_failures):
                    failed = context.recent_failures(settings.max_consecutive_failures)
                    logger.debug(
                        f"Stopping after {context.consecutive_failures} consecutive failures: "
                        f"{', '.join(failed)}"
                    )
                    raise DownloadAbortedError(context, failed)
            elif result.status == FetchStatus.DOWNLOADED and settings.pacing_delay_seconds > 0:
                time.sleep(settings.pacing_delay_seconds)
    finally:
        if owns_session:
            session.close()

    logger.info(
        f"Download finished: {len(context.validated_files)} files available "
        f"({context.downloaded} downloaded, {context.skipped} already present), "
        f"{len(context.failed_files)} failed"
    )
    return context
