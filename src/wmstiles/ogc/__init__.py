"""
OGC (Open Geospatial Consortium) specific implementations.

This module contains the WMS capabilities reader, the JPL tile service
reader and the GetMap request template.
"""

from .capabilities import Capabilities, Layer, WMSCapabilitiesParser, WMSCapabilitiesReader
from .tileservice import TiledGroup, TilePattern, TileService, TileServiceParser, TileServiceReader
from .wms import RequestTemplate

__all__ = [
    "Capabilities",
    "Layer",
    "WMSCapabilitiesParser",
    "WMSCapabilitiesReader",
    "TiledGroup",
    "TilePattern",
    "TileService",
    "TileServiceParser",
    "TileServiceReader",
    "RequestTemplate",
]
