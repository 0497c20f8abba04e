"""WMS tile source: profile negotiation plus per-tile image and heightfield fetches."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from ..errors import ResolutionError
from ..heightfield import ImageToHeightFieldConverter
from ..ogc.wms import RequestTemplate
from ..registry import DEFAULT_REGISTRY, ProfileRegistry
from ..tiles import HTTPImageLoader, ReadOptions
from ..types import SpatialProfile, TileKey
from ..typing import (
    CapabilitiesReader,
    HeightField,
    HeightFieldConverter,
    Image,
    ImageLoader,
    TileServiceReader,
)
from .base import TileSource, register_source
from .config import WMSOptions
from .resolver import ProfileResolver, Resolution

logger = logging.getLogger(__name__)


@register_source("wms")
class WMSSource(TileSource):
    """Tile source backed by a WMS (optionally a JPL tile service).

    ``create_profile`` must run, and succeed, before tiles are requested;
    afterwards the source is read-only and can be shared between threads as
    far as its image loader allows.
    """

    extensions = ("osgearth_wms",)

    def __init__(
        self,
        options: Union[WMSOptions, Mapping[str, Any]],
        *,
        capabilities_reader: Optional[CapabilitiesReader] = None,
        tileservice_reader: Optional[TileServiceReader] = None,
        image_loader: Optional[ImageLoader] = None,
        converter: Optional[HeightFieldConverter] = None,
        registry: ProfileRegistry = DEFAULT_REGISTRY,
        resolver: Optional[ProfileResolver] = None,
    ) -> None:
        self.options = options if isinstance(options, WMSOptions) else WMSOptions.from_options(options)
        self.resolver = resolver or ProfileResolver(capabilities_reader, tileservice_reader, registry)
        self.image_loader = image_loader or HTTPImageLoader()
        self.converter = converter or ImageToHeightFieldConverter()
        self.read_options = ReadOptions(timeout=self.options.timeout)
        self._resolution: Optional[Resolution] = None

    @classmethod
    def from_options(cls, **options: Any) -> "WMSSource":
        return cls(WMSOptions.from_options(options))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def create_profile(self, map_profile: Optional[SpatialProfile] = None) -> Optional[SpatialProfile]:
        if self._resolution is not None:
            logger.debug("Profile of %s already resolved", self.options.url)
            return self._resolution.profile

        resolution = self.resolver.resolve(map_profile, self.options)
        if resolution is None:
            return None
        self._resolution = resolution
        return resolution.profile

    @property
    def resolution(self) -> Optional[Resolution]:
        return self._resolution

    @property
    def profile(self) -> Optional[SpatialProfile]:
        return self._resolution.profile if self._resolution is not None else None

    @property
    def template(self) -> Optional[RequestTemplate]:
        return self._resolution.template if self._resolution is not None else None

    @property
    def config(self) -> WMSOptions:
        """Resolved configuration once available, the raw options before."""
        return self._resolution.config if self._resolution is not None else self.options

    # ------------------------------------------------------------------
    # Tiles
    # ------------------------------------------------------------------
    def create_uri(self, key: TileKey) -> str:
        """
        GetMap URI for ``key``.

        Raises:
            ResolutionError: If ``create_profile`` has not produced a template
        """
        if self._resolution is None:
            raise ResolutionError(f"WMS source {self.options.url} has not been resolved")
        return self._resolution.template.build_uri(key)

    def create_image(self, key: TileKey) -> Optional[Image]:
        if self._resolution is None:
            logger.warning("Image requested from unresolved WMS source %s", self.options.url)
            return None
        return self.image_loader.read_image(self.create_uri(key), self.read_options)

    def create_height_field(self, key: TileKey) -> Optional[HeightField]:
        if self._resolution is None:
            logger.warning("Heightfield requested from unresolved WMS source %s", self.options.url)
            return None

        image = self.create_image(key)
        if image is None:
            logger.info("Failed to read heightfield from %s", self.create_uri(key))

        # The converter sees the missing image as well and decides what it yields
        scale_factor = self.config.elevation_unit.scale_factor
        return self.converter.convert(image, scale_factor, key.extent)

    @property
    def pixels_per_tile(self) -> int:
        return self.config.tile_size

    @property
    def extension(self) -> str:
        return self.config.format or ""
