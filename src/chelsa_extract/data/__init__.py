"""Manifest filtering, downloading, extraction and statistics."""

from chelsa_extract.data.extraction import extract_records, parse_date_from_filename
from chelsa_extract.data.fetcher import DownloadAbortedError, RunContext, fetch_all, fetch_one
from chelsa_extract.data.manifest import filter_manifest, read_manifest

__all__ = [
    "DownloadAbortedError",
    "RunContext",
    "extract_records",
    "fetch_all",
    "fetch_one",
    "filter_manifest",
    "parse_date_from_filename",
    "read_manifest",
]
