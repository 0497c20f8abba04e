"""Reconcile capabilities, tile service patterns and the map profile into one profile."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..core import is_geographic, srs_equivalent
from ..ogc.capabilities import Capabilities, WMSCapabilitiesReader
from ..ogc.tileservice import TileServiceReader
from ..ogc.wms import RequestTemplate
from ..registry import DEFAULT_REGISTRY, ProfileRegistry
from ..types import ProfileType, SpatialProfile
from ..typing import CapabilitiesReader, TileServiceReader as TileServiceReaderProtocol
from .config import DEFAULT_FORMAT, DEFAULT_SRS, ResolvedConfig, WMSOptions

logger = logging.getLogger(__name__)

__all__ = ["Resolution", "ProfileResolver"]


class Resolution(BaseModel):
    """Outcome of resolving a WMS source against its service."""

    profile: Optional[SpatialProfile] = None
    template: RequestTemplate
    config: ResolvedConfig

    model_config = ConfigDict(frozen=True)


class ProfileResolver:
    """Determines the spatial profile and request template of a WMS source.

    The resolver only talks to its collaborators: a capabilities reader, a
    tile service reader and a catalog of shared profiles.
    """

    def __init__(
        self,
        capabilities_reader: Optional[CapabilitiesReader] = None,
        tileservice_reader: Optional[TileServiceReaderProtocol] = None,
        registry: ProfileRegistry = DEFAULT_REGISTRY,
    ) -> None:
        self.capabilities_reader = capabilities_reader or WMSCapabilitiesReader()
        self.tileservice_reader = tileservice_reader or TileServiceReader()
        self.registry = registry

    def resolve(
        self,
        map_profile: Optional[SpatialProfile],
        options: WMSOptions,
    ) -> Optional[Resolution]:
        """
        Resolve ``options`` against the remote service.

        Args:
            map_profile: Profile of the map the source will feed, if known
            options: Caller supplied source options

        Returns:
            The resolution, whose ``profile`` is None when nothing matched,
            or None when the capabilities document is unavailable
        """
        capabilities_url = options.effective_capabilities_url()
        capabilities = self.capabilities_reader.read(capabilities_url)
        if capabilities is None:
            logger.warning("Unable to read WMS GetCapabilities from %s; failing", capabilities_url)
            return None
        logger.info("Got capabilities from %s", capabilities_url)

        config = options.resolve(format=self._choose_format(options, capabilities), srs=options.srs or DEFAULT_SRS)

        template = RequestTemplate.for_get_map(
            config.url,
            layers=config.layers,
            format=config.format,
            style=config.style,
            srs=config.srs,
            tile_size=config.tile_size,
            wms_format=config.wms_format,
        )
        profile = self._profile_from_capabilities(map_profile, config, capabilities)

        # JPL's experimental tile service overrides both when it matches
        logger.info("Testing for JPL/TileService at %s", config.tileservice_url)
        tile_service = self.tileservice_reader.read(config.tileservice_url)
        if tile_service is not None:
            logger.info("Found JPL/TileService spec at %s", config.tileservice_url)
            patterns = tile_service.get_matching_patterns(
                config.layers,
                config.format,
                config.style,
                config.srs,
                config.tile_size,
                config.tile_size,
            )
            if patterns:
                profile = tile_service.create_profile(patterns)
                template = RequestTemplate.for_tile_pattern(config.url, patterns[0])
            else:
                logger.info("No tile pattern matches layers '%s'; using GetMap", config.layers)
        else:
            logger.info("No JPL/TileService spec found; assuming standard WMS")

        if profile is None:
            logger.warning("Unable to determine a profile for WMS layers '%s'", config.layers)

        return Resolution(profile=profile, template=template.finalize(config.format), config=config)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _choose_format(self, options: WMSOptions, capabilities: Capabilities) -> str:
        if options.format:
            return options.format
        suggested = capabilities.suggest_extension()
        logger.info("No format specified, capabilities suggested extension %s", suggested)
        return suggested or DEFAULT_FORMAT

    def _profile_from_capabilities(
        self,
        map_profile: Optional[SpatialProfile],
        config: ResolvedConfig,
        capabilities: Capabilities,
    ) -> Optional[SpatialProfile]:
        geographic = is_geographic(config.srs)

        if map_profile is not None and srs_equivalent(map_profile.srs, config.srs):
            return map_profile

        # Comma separated layer lists are looked up as a single name
        layer = capabilities.get_layer_by_name(config.layers)
        extents = layer.get_extents() if layer is not None else None
        if extents is not None:
            global_geodetic = self.registry.global_geodetic
            if geographic and extents == global_geodetic.extent.as_tuple():
                return global_geodetic
            min_x, min_y, max_x, max_y = extents
            try:
                return SpatialProfile.create(config.srs, min_x, min_y, max_x, max_y)
            except ValueError as exc:
                logger.info("Ignoring unusable extent %s of layer '%s': %s", extents, config.layers, exc)
        elif layer is not None:
            logger.info("Layer '%s' advertises no extent", config.layers)
        else:
            logger.info("Layer '%s' not found in capabilities", config.layers)

        # Last resort, only valid for global datasets
        if geographic and map_profile is not None and map_profile.profile_type != ProfileType.LOCAL:
            return map_profile

        return None
