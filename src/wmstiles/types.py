"""
Type definitions and models for WMS tile sources.
"""

import math
from typing import Dict, Optional, Tuple, Union
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .core import is_geographic, is_mercator, parse_srs, srs_equivalent


class ElevationUnit(str, Enum):
    """Units of the heights delivered by an elevation layer."""
    METERS = "m"
    FEET = "ft"

    @property
    def scale_factor(self) -> float:
        """Factor that converts heights in this unit to meters."""
        return 0.3048 if self is ElevationUnit.FEET else 1.0


class ProfileType(str, Enum):
    """Kinds of tiling profile."""
    GEODETIC = "geodetic"
    MERCATOR = "mercator"
    LOCAL = "local"
    UNKNOWN = "unknown"

    @classmethod
    def for_srs(cls, srs: str) -> "ProfileType":
        """Classify a spatial reference the way tiling profiles do."""
        if is_geographic(srs):
            return cls.GEODETIC
        if is_mercator(srs):
            return cls.MERCATOR
        if parse_srs(srs) is not None:
            return cls.LOCAL
        return cls.UNKNOWN


BBoxTuple = Tuple[float, float, float, float]

class GeoExtent(BaseModel):
    """Rectangular extent expressed in a spatial reference system."""
    min_x: float = Field(..., description="Minimum X coordinate")
    min_y: float = Field(..., description="Minimum Y coordinate")
    max_x: float = Field(..., description="Maximum X coordinate")
    max_y: float = Field(..., description="Maximum Y coordinate")
    srs: str = Field(default="EPSG:4326", description="Spatial reference system")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_coordinates(self):
        """Validate that min coordinates are less than max coordinates."""
        if self.min_x >= self.max_x:
            raise ValueError('min_x must be less than max_x')
        if self.min_y >= self.max_y:
            raise ValueError('min_y must be less than max_y')
        return self

    @classmethod
    def from_tuple(cls, bbox: BBoxTuple, srs: str = "EPSG:4326") -> "GeoExtent":
        """Create GeoExtent from a (min_x, min_y, max_x, max_y) tuple."""
        return cls(min_x=bbox[0], min_y=bbox[1], max_x=bbox[2], max_y=bbox[3], srs=srs)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def as_tuple(self) -> BBoxTuple:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def equals(self, other: "GeoExtent") -> bool:
        """Exact comparison of the four bounds; the SRS is not considered."""
        return self.as_tuple() == other.as_tuple()

    def is_close(self, other: "GeoExtent", tolerance: float = 1e-6) -> bool:
        """Compare bounds allowing for floating point noise."""
        return all(
            math.isclose(a, b, rel_tol=0.0, abs_tol=tolerance)
            for a, b in zip(self.as_tuple(), other.as_tuple())
        )

    def intersects(self, other: "GeoExtent") -> bool:
        """Check if this extent intersects with another."""
        return self.min_x < other.max_x and self.max_x > other.min_x and self.min_y < other.max_y and self.max_y > other.min_y


class TileKey(BaseModel):
    """Position of one tile in a profile, with its geographic extent."""
    lod: int = Field(..., ge=0, description="Level of detail, 0 being the coarsest")
    x: int = Field(..., ge=0, description="Column, counted from the west edge")
    y: int = Field(..., ge=0, description="Row, counted from the north edge")
    extent: GeoExtent

    model_config = ConfigDict(frozen=True)

    def bounds(self) -> BBoxTuple:
        return self.extent.as_tuple()


class SpatialProfile(BaseModel):
    """Spatial reference, extent and level-zero tiling of a tile source."""
    srs: str
    extent: GeoExtent
    profile_type: ProfileType = ProfileType.UNKNOWN
    num_tiles_wide: int = Field(default=1, gt=0, description="Tiles across at level 0")
    num_tiles_high: int = Field(default=1, gt=0, description="Tiles down at level 0")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def create(
        cls,
        srs: str,
        min_x: float,
        min_y: float,
        max_x: float,
        max_y: float,
        num_tiles_wide: int = 1,
        num_tiles_high: int = 1,
    ) -> "SpatialProfile":
        """Create a profile whose type is derived from ``srs``."""
        return cls(
            srs=srs,
            extent=GeoExtent(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y, srs=srs),
            profile_type=ProfileType.for_srs(srs),
            num_tiles_wide=num_tiles_wide,
            num_tiles_high=num_tiles_high,
        )

    def is_equivalent_to(self, other: "SpatialProfile") -> bool:
        """Same reference system and (within tolerance) the same extent."""
        return srs_equivalent(self.srs, other.srs) and self.extent.is_close(other.extent)

    def num_tiles(self, lod: int) -> Tuple[int, int]:
        """Number of tiles (wide, high) at ``lod``."""
        factor = 2 ** lod
        return self.num_tiles_wide * factor, self.num_tiles_high * factor

    def tile_dimensions(self, lod: int) -> Tuple[float, float]:
        """Width and height of one tile at ``lod`` in SRS units."""
        wide, high = self.num_tiles(lod)
        return self.extent.width / wide, self.extent.height / high

    def create_tile_key(self, lod: int, x: int, y: int) -> TileKey:
        """
        Address a tile of this profile.

        Args:
            lod: Level of detail
            x: Column, 0 at the west edge
            y: Row, 0 at the north edge

        Returns:
            TileKey carrying the tile's extent

        Raises:
            ValueError: If ``x`` or ``y`` fall outside the grid at ``lod``
        """
        if lod < 0:
            raise ValueError("lod must not be negative")
        wide, high = self.num_tiles(lod)
        if not (0 <= x < wide and 0 <= y < high):
            raise ValueError(f"Tile ({x}, {y}) is outside the {wide}x{high} grid at lod {lod}")

        tile_width, tile_height = self.tile_dimensions(lod)
        min_x = self.extent.min_x + x * tile_width
        max_y = self.extent.max_y - y * tile_height
        extent = GeoExtent(
            min_x=min_x,
            min_y=max_y - tile_height,
            max_x=min_x + tile_width,
            max_y=max_y,
            srs=self.srs,
        )
        return TileKey(lod=lod, x=x, y=y, extent=extent)


class TileRequest(BaseModel):
    """A single blocking image request."""

    url: str
    params: Dict[str, str] = Field(default_factory=dict)
    headers: Optional[Dict[str, str]] = None
    timeout: float = 30
    output_format: Optional[str] = None


class TileResponse(BaseModel):
    """Response from tile request."""
    data: bytes
    content_type: str
    status_code: int
    headers: Dict[str, str]
    url: str
    success: bool
    error_message: Optional[str] = None


ExtentLike = Union[GeoExtent, TileKey, BBoxTuple]


def extent_bounds(extent: ExtentLike) -> BBoxTuple:
    """Bounds of a GeoExtent, a TileKey or a plain 4-tuple."""
    if isinstance(extent, TileKey):
        return extent.bounds()
    if isinstance(extent, GeoExtent):
        return extent.as_tuple()
    if isinstance(extent, (tuple, list)) and len(extent) == 4:
        return (float(extent[0]), float(extent[1]), float(extent[2]), float(extent[3]))
    raise ValueError(f"Invalid extent: {extent!r}. Expected GeoExtent, TileKey or (min_x, min_y, max_x, max_y)")
