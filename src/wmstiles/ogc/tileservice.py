"""JPL ``GetTileService`` parsing, pattern matching and profile construction.

A tile service lists, per tiled group, the exact GetMap requests a server
has pre-rendered. Each pattern is a query string whose ``bbox`` identifies one
tile; swapping that bbox for placeholders gives a reusable request prototype.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence

import requests
import xml.etree.ElementTree as ET
from pydantic import BaseModel, ConfigDict, Field

from ..core import is_geographic
from ..errors import ParseError
from ..tiles import fetch_document
from ..types import BBoxTuple, SpatialProfile
from .capabilities import strip_namespaces

logger = logging.getLogger(__name__)

__all__ = ["TilePattern", "TiledGroup", "TileService", "TileServiceParser", "TileServiceReader"]

BBOX_PLACEHOLDERS = "%f,%f,%f,%f"


class TilePattern(BaseModel):
    """One pre-rendered GetMap request from a tiled group."""

    pattern: str
    layers: str = ""
    format: str = ""
    styles: str = ""
    srs: str = ""
    image_width: int = Field(..., gt=0)
    image_height: int = Field(..., gt=0)
    extent: BBoxTuple
    prototype: str = Field(..., description="The pattern with its bbox replaced by placeholders")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, pattern: str) -> "TilePattern":
        """
        Parse a pattern such as
        ``request=GetMap&layers=global_mosaic&srs=EPSG:4326&format=image/jpeg&styles=&width=512&height=512&bbox=-180,-166,76,90``.

        Raises:
            ParseError: If the pattern lacks a usable bbox, width or height
        """
        params: Dict[str, str] = {}
        prototype_parts: List[str] = []
        bbox_count = 0
        for part in pattern.split("&"):
            key, _, value = part.partition("=")
            params[key.strip().lower()] = value
            if key.strip().lower() == "bbox":
                bbox_count += 1
                prototype_parts.append(f"{key}={BBOX_PLACEHOLDERS}")
            else:
                prototype_parts.append(part.replace("%", "%%"))

        try:
            bounds = [float(v) for v in params["bbox"].split(",")]
            width = int(params["width"])
            height = int(params["height"])
        except (KeyError, ValueError) as exc:
            raise ParseError(f"Invalid tile pattern '{pattern}'", cause=exc) from exc
        if bbox_count != 1:
            raise ParseError(f"Tile pattern must hold exactly one bbox: '{pattern}'")
        if len(bounds) != 4 or bounds[0] >= bounds[2] or bounds[1] >= bounds[3]:
            raise ParseError(f"Invalid bbox in tile pattern '{pattern}'")

        return cls(
            pattern=pattern,
            layers=params.get("layers", ""),
            format=params.get("format", ""),
            styles=params.get("styles", ""),
            srs=params.get("srs", params.get("crs", "")),
            image_width=width,
            image_height=height,
            extent=(bounds[0], bounds[1], bounds[2], bounds[3]),
            prototype="&".join(prototype_parts),
        )

    @property
    def tile_width(self) -> float:
        return self.extent[2] - self.extent[0]

    @property
    def tile_height(self) -> float:
        return self.extent[3] - self.extent[1]

    @property
    def top_left(self) -> tuple[float, float]:
        return self.extent[0], self.extent[3]

    def matches(self, layers: str, format: str, style: str, srs: str, width: int, height: int) -> bool:
        wanted_format = format if "/" in format else f"image/{format}"
        return (
            self.layers == layers
            and self.format.lower() == wanted_format.lower()
            and self.styles == style
            and self.srs.upper() == srs.upper()
            and self.image_width == width
            and self.image_height == height
        )


class TiledGroup(BaseModel):
    name: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    extent: Optional[BBoxTuple] = None
    patterns: List[TilePattern] = Field(default_factory=list)


class TileService(BaseModel):
    """Parsed ``WMS_Tile_Service`` document."""

    name: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    data_extent: Optional[BBoxTuple] = Field(None, description="LatLonBoundingBox of the tiled patterns")
    groups: List[TiledGroup] = Field(default_factory=list)

    def get_matching_patterns(
        self,
        layers: str,
        format: str,
        style: str,
        srs: str,
        image_width: int,
        image_height: int,
    ) -> List[TilePattern]:
        """Patterns, in document order, that serve exactly the requested tiles."""
        return [
            pattern
            for group in self.groups
            for pattern in group.patterns
            if pattern.matches(layers, format, style, srs, image_width, image_height)
        ]

    def create_profile(self, patterns: Sequence[TilePattern]) -> Optional[SpatialProfile]:
        """
        Build the profile implied by a set of patterns of one layer.

        The coarsest pattern fixes the level-zero tile size and the grid
        origin (its top-left corner); enough level-zero tiles are laid out to
        cover the data extent.
        """
        if not patterns:
            return None

        coarsest = max(patterns, key=lambda p: (p.tile_width, p.tile_height))
        tile_width, tile_height = coarsest.tile_width, coarsest.tile_height
        origin_x, origin_y = coarsest.top_left
        srs = coarsest.srs or "EPSG:4326"

        if self.data_extent is not None and is_geographic(srs):
            data_max_x, data_min_y = self.data_extent[2], self.data_extent[1]
        else:
            data_max_x = max(p.extent[2] for p in patterns)
            data_min_y = min(p.extent[1] for p in patterns)

        tiles_wide = max(1, int(math.ceil((data_max_x - origin_x) / tile_width)))
        tiles_high = max(1, int(math.ceil((origin_y - data_min_y) / tile_height)))

        return SpatialProfile.create(
            srs,
            origin_x,
            origin_y - tiles_high * tile_height,
            origin_x + tiles_wide * tile_width,
            origin_y,
            num_tiles_wide=tiles_wide,
            num_tiles_high=tiles_high,
        )


class TileServiceParser:
    """Parser for JPL ``WMS_Tile_Service`` documents."""

    def parse(self, xml_content: bytes | str) -> TileService:
        try:
            root = ET.fromstring(xml_content)
        except ET.ParseError as exc:
            raise ParseError(f"Invalid XML content: {exc}", cause=exc) from exc

        strip_namespaces(root)
        if root.tag != "WMS_Tile_Service":
            raise ParseError(f"Unexpected tile service root element <{root.tag}>")

        tiled_patterns = root.find("TiledPatterns")
        groups: List[TiledGroup] = []
        data_extent = None
        if tiled_patterns is not None:
            data_extent = self._parse_extent(tiled_patterns)
            for group_elem in tiled_patterns.iter("TiledGroup"):
                groups.append(self._parse_group(group_elem))

        return TileService(
            name=self._get_text(root, "Service/Name"),
            title=self._get_text(root, "Service/Title"),
            abstract=self._get_text(root, "Service/Abstract"),
            data_extent=data_extent,
            groups=groups,
        )

    def _get_text(self, element: ET.Element, path: str) -> Optional[str]:
        elem = element.find(path)
        return elem.text.strip() if elem is not None and elem.text else None

    def _parse_extent(self, element: ET.Element) -> Optional[BBoxTuple]:
        bbox_elem = element.find("LatLonBoundingBox")
        if bbox_elem is None:
            return None
        try:
            minx, miny, maxx, maxy = (float(bbox_elem.get(k, "")) for k in ("minx", "miny", "maxx", "maxy"))
        except ValueError:
            logger.debug("Ignoring malformed LatLonBoundingBox %s", bbox_elem.attrib)
            return None
        return (minx, miny, maxx, maxy)

    def _parse_group(self, element: ET.Element) -> TiledGroup:
        patterns: List[TilePattern] = []
        for pattern_elem in element.findall("TilePattern"):
            # Several whitespace separated alternatives may share one element
            for raw in (pattern_elem.text or "").split():
                try:
                    patterns.append(TilePattern.parse(raw))
                except ParseError as exc:
                    logger.debug("Skipping tile pattern: %s", exc)
        return TiledGroup(
            name=self._get_text(element, "Name"),
            title=self._get_text(element, "Title"),
            abstract=self._get_text(element, "Abstract"),
            extent=self._parse_extent(element),
            patterns=patterns,
        )


class TileServiceReader:
    """Probes for a tile service; absence is normal and yields None."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        parser: Optional[TileServiceParser] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.parser = parser or TileServiceParser()

    def read(self, url: str) -> Optional[TileService]:
        content = fetch_document(url, session=self.session, timeout=self.timeout)
        if content is None:
            return None
        try:
            return self.parser.parse(content)
        except ParseError as exc:
            logger.debug("No tile service at %s: %s", url, exc)
            return None
