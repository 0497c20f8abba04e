"""Type aliases and protocols for wmstiles collaborators."""

from typing import TypeAlias, Protocol, Dict, Any, Optional
import xarray as xr
from numpy.typing import NDArray

# Type aliases for better user experience
Image: TypeAlias = NDArray[Any]  # decoded raster, (rows, cols) or (rows, cols, bands)
HeightField: TypeAlias = xr.DataArray  # float32 heights, dims ("y", "x")
SourceOptions: TypeAlias = Dict[str, Any]

# Protocols for the collaborators a tile source depends on
class CapabilitiesReader(Protocol):
    """Fetches and parses a WMS GetCapabilities document."""

    def read(self, url: str) -> Optional["Capabilities"]:
        """Return the parsed document, or None if it is unavailable."""
        ...


class TileServiceReader(Protocol):
    """Fetches and parses a JPL GetTileService document."""

    def read(self, url: str) -> Optional["TileService"]:
        """Return the parsed document, or None if it is unavailable."""
        ...


class ImageLoader(Protocol):
    """Loads and decodes the image behind a URI."""

    def read_image(self, uri: str, options: Optional["ReadOptions"] = None) -> Optional[Image]:
        """Return the decoded image, or None on any failure."""
        ...


class HeightFieldConverter(Protocol):
    """Turns a (possibly absent) image into a heightfield."""

    def convert(
        self,
        image: Optional[Image],
        scale_factor: float,
        extent: Optional["GeoExtent"] = None,
    ) -> Optional[HeightField]:
        """Convert ``image`` to heights scaled by ``scale_factor``."""
        ...


# Import types that are used in protocols
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from .ogc.capabilities import Capabilities
    from .ogc.tileservice import TileService
    from .tiles import ReadOptions
    from .types import GeoExtent
