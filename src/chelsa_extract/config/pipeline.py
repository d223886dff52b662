"""Top-level pipeline configuration.

Combines the manifest filter, download settings, sampling sites and output
options into one model that can be loaded from a YAML or JSON file.
"""

from pathlib import Path

from pydantic import Field, field_validator, model_validator

from chelsa_extract.config.base import BaseConfig
from chelsa_extract.config.download import DownloadSettings
from chelsa_extract.config.paths import DEFAULT_MANIFEST_PATH, DEFAULT_OUTPUT_DIR
from chelsa_extract.config.sites import SamplingSite, default_sites


class ManifestFilterConfig(BaseConfig):
    """Selection predicate applied to manifest lines.

    Example:
        >>> ManifestFilterConfig(content_tag="tas", start_year=2000, end_year=2019)
    """

    content_tag: str = Field(default="tas", min_length=1, description="Variable tag in the path")
    start_year: int = Field(default=2000, ge=1000, le=9999)
    end_year: int = Field(default=2019, ge=1000, le=9999)

    @model_validator(mode="after")
    def validate_year_range(self) -> "ManifestFilterConfig":
        if self.start_year > self.end_year:
            raise ValueError(
                f"start_year ({self.start_year}) must not be after end_year ({self.end_year})"
            )
        return self


class PipelineConfig(BaseConfig):
    """Configuration for a full download, extraction and reporting run."""

    manifest_path: Path = Field(default=DEFAULT_MANIFEST_PATH)
    output_dir: Path = Field(default=DEFAULT_OUTPUT_DIR)
    filter: ManifestFilterConfig = Field(default_factory=ManifestFilterConfig)
    download: DownloadSettings = Field(default_factory=DownloadSettings)
    sites: list[SamplingSite] = Field(default_factory=default_sites)
    make_plots: bool = Field(default=True, description="Write HTML plots next to the CSV table")

    @field_validator("sites")
    @classmethod
    def validate_sites(cls, v: list[SamplingSite]) -> list[SamplingSite]:
        """Require at least one site and unique site codes."""
        if not v:
            raise ValueError("At least one sampling site is required")
        codes = [site.site_code for site in v]
        duplicates = sorted({code for code in codes if codes.count(code) > 1})
        if duplicates:
            raise ValueError(f"Duplicate site codes: {', '.join(duplicates)}")
        return v
