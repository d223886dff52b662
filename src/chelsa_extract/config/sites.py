"""Sampling site definitions.

Sites are sampled at ``(x, y)`` in the raster's own reference frame. CHELSA
V2.1 grids are in WGS84 geographic coordinates, so ``x`` is longitude and
``y`` latitude. The ``alt_x``/``alt_y`` pair keeps the Gauss-Krüger
Rechtswert/Hochwert from the field records and is never used for sampling.
"""

from pydantic import Field, model_validator

from chelsa_extract.config.base import BaseConfig


class SamplingSite(BaseConfig):
    """A fixed geographic sampling point with its field metadata."""

    stream: str = Field(..., description="Stream or group label")
    site_code: str = Field(..., min_length=1, description="Short site identifier")
    site_name: str = Field(default="", description="Descriptive site name")
    x: float = Field(..., description="Sampling x-coordinate (raster reference frame)")
    y: float = Field(..., description="Sampling y-coordinate (raster reference frame)")
    alt_x: float | None = Field(default=None, description="Alternate x-coordinate (reference only)")
    alt_y: float | None = Field(default=None, description="Alternate y-coordinate (reference only)")

    @model_validator(mode="after")
    def validate_alternate_pair(self) -> "SamplingSite":
        """Alternate coordinates come as a pair or not at all."""
        if (self.alt_x is None) != (self.alt_y is None):
            raise ValueError(
                f"Site {self.site_code}: alt_x and alt_y must both be set or both be omitted"
            )
        return self

    @property
    def coordinate(self) -> tuple[float, float]:
        return (self.x, self.y)


# Four stream sites in the Kinzig catchment, Hesse, Germany
DEFAULT_SITES: tuple[SamplingSite, ...] = (
    SamplingSite(
        stream="Aubach",
        site_code="Auba",
        site_name="oh. Wiesthal",
        x=9.42889356,
        y=50.0374896,
        alt_x=3530801.78,
        alt_y=5544665.62,
    ),
    SamplingSite(
        stream="Bieber",
        site_code="Bieb",
        site_name="oh. Rossbach",
        x=9.3051018,
        y=50.1617954,
        alt_x=3521876.92,
        alt_y=5558448.64,
    ),
    SamplingSite(
        stream="Kinzig O3",
        site_code="KiO3",
        site_name="uh. Rothenbergen",
        x=9.10036763,
        y=50.1868858,
        alt_x=3507243.99,
        alt_y=5561199.75,
    ),
    SamplingSite(
        stream="Kinzig W1",
        site_code="KiW1",
        site_name="Bulau",
        x=8.96570543,
        y=50.1315991,
        alt_x=3497623.98,
        alt_y=5555045.85,
    ),
)


def default_sites() -> list[SamplingSite]:
    """Return a fresh list with copies of the default sites."""
    return [site.model_copy() for site in DEFAULT_SITES]
