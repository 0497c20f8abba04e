"""wmstiles - WMS endpoints as profiled image and elevation tile sources."""

from ._version import __version__

from .api import create_extent, create_wms_options, open_source, open_wms_source
from .heightfield import ImageToHeightFieldConverter
from .ogc import Capabilities, Layer, RequestTemplate, TilePattern, TileService
from .registry import DEFAULT_REGISTRY, ProfileRegistry
from .service import (
    ProfileResolver,
    Resolution,
    ResolvedConfig,
    TileSource,
    WMSOptions,
    WMSSource,
    detect_driver,
    get_source,
    register_source,
)
from .tiles import HTTPImageLoader, ReadOptions
from .types import (
    BBoxTuple,
    ElevationUnit,
    GeoExtent,
    ProfileType,
    SpatialProfile,
    TileKey,
)

__all__ = [
    "__version__",
    "create_extent",
    "create_wms_options",
    "open_source",
    "open_wms_source",
    "ImageToHeightFieldConverter",
    "Capabilities",
    "Layer",
    "RequestTemplate",
    "TilePattern",
    "TileService",
    "DEFAULT_REGISTRY",
    "ProfileRegistry",
    "ProfileResolver",
    "Resolution",
    "ResolvedConfig",
    "TileSource",
    "WMSOptions",
    "WMSSource",
    "detect_driver",
    "get_source",
    "register_source",
    "HTTPImageLoader",
    "ReadOptions",
    "BBoxTuple",
    "ElevationUnit",
    "GeoExtent",
    "ProfileType",
    "SpatialProfile",
    "TileKey",
]
