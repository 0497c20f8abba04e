"""Configuration models for WMS tile sources.

Options go through two phases: :class:`WMSOptions` holds what the caller
supplied, and :class:`ResolvedConfig` is produced once by the resolver with
the deferred defaults (format, SRS, derived document URLs) filled in.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core import append_query
from ..errors import ConfigurationError
from ..types import ElevationUnit

if TYPE_CHECKING:
    from .wms import WMSSource

logger = logging.getLogger(__name__)

DEFAULT_TILE_SIZE = 256
DEFAULT_FORMAT = "png"
DEFAULT_SRS = "EPSG:4326"

GET_CAPABILITIES_QUERY = "SERVICE=WMS&VERSION=1.1.1&REQUEST=GetCapabilities"
GET_TILE_SERVICE_QUERY = "request=GetTileService"


class WMSOptions(BaseModel):
    """Options recognised by the WMS tile source."""

    url: str = Field(..., min_length=1, description="Service URL prefix")
    layers: str = Field(default="", description="LAYERS value, possibly comma separated")
    style: str = Field(default="", description="STYLES value")
    format: Optional[str] = Field(None, description="Image extension such as png or jpeg")
    wms_format: Optional[str] = Field(None, description="Explicit FORMAT value, e.g. image/png; mode=24bit")
    srs: Optional[str] = Field(None, description="Spatial reference of requests")
    tile_size: int = Field(default=DEFAULT_TILE_SIZE, gt=0, description="Tile width and height in pixels")
    elevation_unit: ElevationUnit = Field(default=ElevationUnit.METERS, description="Units of elevation tiles")
    capabilities_url: Optional[str] = Field(None, description="GetCapabilities URL override")
    tileservice_url: Optional[str] = Field(None, description="GetTileService URL override")
    timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for each request")

    model_config = ConfigDict(frozen=True)

    @field_validator("format", "wms_format", "srs", "capabilities_url", "tileservice_url", mode="before")
    @classmethod
    def blank_as_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("layers", "style", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("elevation_unit", mode="before")
    @classmethod
    def default_elevation_unit(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return ElevationUnit.METERS
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "WMSOptions":
        """
        Build options from a plain mapping such as a parsed earth file.

        ``tile_size`` wins over ``default_tile_size``; a size that is not a
        positive integer falls back to 256.

        Raises:
            ConfigurationError: If ``url`` is missing or a value is invalid
        """
        values = {key: value for key, value in options.items() if key in cls.model_fields}

        if options.get("tile_size") is not None:
            values["tile_size"] = _parse_tile_size(options["tile_size"])
        elif options.get("default_tile_size") is not None:
            values["tile_size"] = _parse_tile_size(options["default_tile_size"])

        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid WMS options: {exc}", cause=exc) from exc

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def effective_capabilities_url(self) -> str:
        return self.capabilities_url or append_query(self.url, GET_CAPABILITIES_QUERY)

    def effective_tileservice_url(self) -> str:
        return self.tileservice_url or append_query(self.url, GET_TILE_SERVICE_QUERY)

    def resolve(self, *, format: str, srs: str) -> "ResolvedConfig":
        """Freeze the deferred defaults into a :class:`ResolvedConfig`."""

        values = self.model_dump()
        values.update(
            format=format,
            srs=srs,
            capabilities_url=self.effective_capabilities_url(),
            tileservice_url=self.effective_tileservice_url(),
        )
        return ResolvedConfig(**values)

    def build_source(self, **collaborators: Any) -> "WMSSource":
        """Create a ``WMSSource`` for these options."""

        from .wms import WMSSource

        return WMSSource(self, **collaborators)


class ResolvedConfig(WMSOptions):
    """Options with every deferred default filled in."""

    format: str
    srs: str
    capabilities_url: str
    tileservice_url: str


def _parse_tile_size(value: Any) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid tile size %r; using %d", value, DEFAULT_TILE_SIZE)
        return DEFAULT_TILE_SIZE
    if size <= 0:
        logger.warning("Invalid tile size %r; using %d", value, DEFAULT_TILE_SIZE)
        return DEFAULT_TILE_SIZE
    return size
