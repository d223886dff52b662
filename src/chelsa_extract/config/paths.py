"""Default file locations for the CHELSA extraction pipeline.

All defaults are relative to the current working directory, so a run started
from a project folder keeps its manifest, downloads and outputs together.
"""

from pathlib import Path

# Bulk-download path list exported from the CHELSA envicloud browser
DEFAULT_MANIFEST_PATH = Path("envidatS3paths.txt")

# One GeoTIFF per remote path, named by the URL basename
DEFAULT_DATA_DIR = Path("CHELSA_data")

# CSV table and plots
DEFAULT_OUTPUT_DIR = Path(".")


def ensure_directories(*directories: Path) -> None:
    """Create the given directories if they don't exist."""
    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)
