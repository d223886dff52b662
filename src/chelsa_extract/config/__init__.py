"""Configuration management for the CHELSA extraction pipeline."""

from chelsa_extract.config.base import BaseConfig
from chelsa_extract.config.download import DownloadSettings
from chelsa_extract.config.paths import (
    DEFAULT_DATA_DIR,
    DEFAULT_MANIFEST_PATH,
    DEFAULT_OUTPUT_DIR,
)
from chelsa_extract.config.pipeline import ManifestFilterConfig, PipelineConfig
from chelsa_extract.config.sites import DEFAULT_SITES, SamplingSite, default_sites

__all__ = [
    "BaseConfig",
    "DownloadSettings",
    "ManifestFilterConfig",
    "PipelineConfig",
    "SamplingSite",
    "DEFAULT_SITES",
    "default_sites",
    "DEFAULT_DATA_DIR",
    "DEFAULT_MANIFEST_PATH",
    "DEFAULT_OUTPUT_DIR",
]
