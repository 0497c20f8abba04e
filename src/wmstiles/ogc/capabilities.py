"""WMS GetCapabilities parsing and reading."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional

import requests
import xml.etree.ElementTree as ET
from pydantic import BaseModel, Field

from ..errors import ParseError, ServiceError
from ..tiles import decodable_extensions, fetch_document
from ..types import BBoxTuple

logger = logging.getLogger(__name__)

__all__ = ["Layer", "Capabilities", "WMSCapabilitiesParser", "WMSCapabilitiesReader", "strip_namespaces"]


class Layer(BaseModel):
    """A (possibly nested) layer advertised by a WMS."""

    name: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    srs: List[str] = Field(default_factory=list)
    lat_lon_extent: Optional[BBoxTuple] = Field(
        None, description="LatLonBoundingBox as (minx, miny, maxx, maxy)"
    )
    layers: List["Layer"] = Field(default_factory=list)

    def get_extents(self) -> Optional[BBoxTuple]:
        return self.lat_lon_extent

    def walk(self) -> Iterator["Layer"]:
        """Yield this layer and its descendants, depth first."""
        yield self
        for child in self.layers:
            yield from child.walk()


class Capabilities(BaseModel):
    """Parsed WMS capabilities document."""

    version: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    formats: List[str] = Field(default_factory=list, description="GetMap output formats")
    layers: List[Layer] = Field(default_factory=list)

    def get_layer_by_name(self, name: str) -> Optional[Layer]:
        for root in self.layers:
            for layer in root.walk():
                if layer.name == name:
                    return layer
        return None

    def suggest_extension(self, supported: Optional[Iterable[str]] = None) -> Optional[str]:
        """
        Suggest a file extension for GetMap requests.

        Returns the subtype of the first advertised ``image/*`` format that can
        be decoded, e.g. ``png`` for ``image/png``, or None.
        """
        candidates = set(supported if supported is not None else decodable_extensions())
        for fmt in self.formats:
            mime = fmt.split(";")[0].strip().lower()
            if mime.startswith("image/") and len(mime) > len("image/"):
                extension = mime[len("image/"):]
                if extension in candidates:
                    return extension
        return None


class WMSCapabilitiesParser:
    """Parser for WMS 1.1.1 (and 1.3.0) capabilities documents."""

    def parse(self, xml_content: bytes | str) -> Capabilities:
        try:
            root = ET.fromstring(xml_content)
        except ET.ParseError as exc:
            raise ParseError(f"Invalid XML content: {exc}", cause=exc) from exc

        strip_namespaces(root)
        if root.tag == "ServiceExceptionReport":
            message = self._get_text(root, "ServiceException") or "service exception"
            raise ServiceError(f"Service returned an exception: {message}")
        if root.tag not in ("WMT_MS_Capabilities", "WMS_Capabilities"):
            raise ParseError(f"Unexpected capabilities root element <{root.tag}>")

        capability = root.find("Capability")
        formats: List[str] = []
        layers: List[Layer] = []
        if capability is not None:
            for format_elem in capability.findall("Request/GetMap/Format"):
                if format_elem.text and format_elem.text.strip():
                    formats.append(format_elem.text.strip())
            for layer_elem in capability.findall("Layer"):
                layers.append(self._parse_layer(layer_elem, None))

        return Capabilities(
            version=root.get("version"),
            title=self._get_text(root, "Service/Title"),
            abstract=self._get_text(root, "Service/Abstract"),
            formats=formats,
            layers=layers,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _get_text(self, element: ET.Element, path: str) -> Optional[str]:
        elem = element.find(path)
        return elem.text.strip() if elem is not None and elem.text else None

    def _parse_layer(self, element: ET.Element, parent: Optional[Layer]) -> Layer:
        srs: List[str] = []
        for srs_elem in element.findall("SRS") + element.findall("CRS"):
            if srs_elem.text:
                # 1.1.1 allows several codes separated by whitespace
                srs.extend(srs_elem.text.split())

        # SRS lists and extents are inherited from the parent layer
        if parent is not None:
            srs = list(dict.fromkeys(parent.srs + srs))
        extent = self._parse_extent(element)
        if extent is None and parent is not None:
            extent = parent.lat_lon_extent

        layer = Layer(
            name=self._get_text(element, "Name"),
            title=self._get_text(element, "Title"),
            abstract=self._get_text(element, "Abstract"),
            srs=srs,
            lat_lon_extent=extent,
        )
        layer.layers = [self._parse_layer(child, layer) for child in element.findall("Layer")]
        return layer

    def _parse_extent(self, element: ET.Element) -> Optional[BBoxTuple]:
        bbox_elem = element.find("LatLonBoundingBox")
        if bbox_elem is not None:
            keys = ("minx", "miny", "maxx", "maxy")
            try:
                minx, miny, maxx, maxy = (float(bbox_elem.get(key, "")) for key in keys)
            except ValueError:
                logger.debug("Ignoring malformed LatLonBoundingBox %s", bbox_elem.attrib)
                return None
            return (minx, miny, maxx, maxy)

        geo_elem = element.find("EX_GeographicBoundingBox")
        if geo_elem is not None:
            paths = ("westBoundLongitude", "southBoundLatitude", "eastBoundLongitude", "northBoundLatitude")
            try:
                west, south, east, north = (float(self._get_text(geo_elem, path) or "") for path in paths)
            except ValueError:
                logger.debug("Ignoring malformed EX_GeographicBoundingBox")
                return None
            return (west, south, east, north)

        return None


def strip_namespaces(root: ET.Element) -> None:
    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]


class WMSCapabilitiesReader:
    """Reads capabilities documents; any failure yields None."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        parser: Optional[WMSCapabilitiesParser] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.parser = parser or WMSCapabilitiesParser()

    def read(self, url: str) -> Optional[Capabilities]:
        content = fetch_document(url, session=self.session, timeout=self.timeout)
        if content is None:
            return None
        try:
            return self.parser.parse(content)
        except ParseError as exc:
            logger.debug("Unable to parse capabilities from %s: %s", url, exc)
            return None
