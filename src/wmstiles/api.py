"""
High-level user-friendly API for wmstiles.

This module provides simple functions for opening WMS tile sources without
wiring up readers, loaders and resolvers by hand.
"""

from typing import Any, Dict, Optional

from .errors import ResolutionError
from .service import TileSource, WMSOptions, WMSSource, detect_driver, get_source
from .types import GeoExtent, SpatialProfile


def create_extent(
    min_x: float,
    min_y: float,
    max_x: float,
    max_y: float,
    srs: str = "EPSG:4326"
) -> GeoExtent:
    """
    Create an extent from simple coordinates.

    Args:
        min_x: Minimum X coordinate (west)
        min_y: Minimum Y coordinate (south)
        max_x: Maximum X coordinate (east)
        max_y: Maximum Y coordinate (north)
        srs: Spatial reference system (default: WGS84)

    Returns:
        GeoExtent object

    Raises:
        ValueError: If coordinates are invalid
    """
    return GeoExtent(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y, srs=srs)


def create_wms_options(
    url: str,
    layers: str,
    style: str = "",
    format: Optional[str] = None,
    srs: Optional[str] = None,
    tile_size: Optional[int] = None,
    **kwargs: Any
) -> WMSOptions:
    """
    Create WMS tile source options.

    Args:
        url: WMS service URL
        layers: Layer name(s)
        style: Style name
        format: Image extension (default: suggested by the service, else png)
        srs: Spatial reference (default: EPSG:4326)
        tile_size: Tile width and height in pixels (default: ``default_tile_size``, else 256)
        **kwargs: Further options such as ``wms_format`` or ``elevation_unit``

    Returns:
        WMSOptions instance

    Raises:
        ConfigurationError: If an option is invalid
    """
    options: Dict[str, Any] = {
        "url": url,
        "layers": layers,
        "style": style,
        "format": format,
        "srs": srs,
        **kwargs,
    }
    if tile_size is not None:
        options["tile_size"] = tile_size
    return WMSOptions.from_options(options)


def open_wms_source(
    url: str,
    map_profile: Optional[SpatialProfile] = None,
    **options: Any
) -> WMSSource:
    """
    Create a WMS source and resolve its profile.

    Args:
        url: WMS service URL
        map_profile: Profile of the map the source will feed
        **options: Source options (``layers``, ``format``, ``srs``, ...)

    Returns:
        A resolved WMSSource

    Raises:
        ConfigurationError: If an option is invalid
        ResolutionError: If no profile could be determined
    """
    source = WMSSource(WMSOptions.from_options({"url": url, **options}))
    if source.create_profile(map_profile) is None:
        raise ResolutionError(f"Unable to determine a profile for WMS source {url}")
    return source


def open_source(
    name: str,
    map_profile: Optional[SpatialProfile] = None,
    **options: Any
) -> TileSource:
    """
    Open a tile source by pseudo file name (``layer.osgearth_wms``) or URL.

    A name that is itself a URL doubles as the ``url`` option.

    Raises:
        ValueError: If no driver handles ``name``
        ResolutionError: If no profile could be determined
    """
    driver = detect_driver(name)
    if "://" in name:
        options.setdefault("url", name)
    source = get_source(driver, **options)
    if source.create_profile(map_profile) is None:
        raise ResolutionError(f"Unable to determine a profile for {name}")
    return source
