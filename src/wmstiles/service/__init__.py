"""Tile source abstractions and the WMS implementation."""

from .base import TileSource, detect_driver, get_source, register_source
from .config import ResolvedConfig, WMSOptions
from .resolver import ProfileResolver, Resolution
from .wms import WMSSource

__all__ = [
    "TileSource",
    "detect_driver",
    "get_source",
    "register_source",
    "ResolvedConfig",
    "WMSOptions",
    "ProfileResolver",
    "Resolution",
    "WMSSource",
]
