"""Driver registry and base abstractions for tile sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Any, Dict, Optional, Type
from urllib.parse import parse_qs, urlparse

from ..types import SpatialProfile, TileKey
from ..typing import HeightField, Image

__all__ = [
    "TileSource",
    "register_source",
    "detect_driver",
    "get_source",
]


class TileSource(ABC):
    """Abstract base class for drivers that serve tiles for a map profile."""

    driver: str
    extensions: tuple[str, ...] = ()

    @classmethod
    def from_options(cls, **options: Any) -> "TileSource":
        """Factory hook for constructing a source from plain options."""

        return cls(**options)

    @classmethod
    def accepts_extension(cls, extension: str) -> bool:
        return extension.lower() in cls.extensions

    # ------------------------------------------------------------------
    # Tile source API
    # ------------------------------------------------------------------
    @abstractmethod
    def create_profile(self, map_profile: Optional[SpatialProfile] = None) -> Optional[SpatialProfile]:
        """Determine the profile of the source; None if it is unusable."""

    @abstractmethod
    def create_image(self, key: TileKey) -> Optional[Image]:
        """Fetch the image for ``key``; None on failure."""

    @abstractmethod
    def create_height_field(self, key: TileKey) -> Optional[HeightField]:
        """Fetch the heightfield for ``key``; None on failure."""

    @property
    @abstractmethod
    def pixels_per_tile(self) -> int:
        """Width and height of tiles in pixels."""

    @property
    @abstractmethod
    def extension(self) -> str:
        """File extension of the images the source produces."""


# ----------------------------------------------------------------------
# Driver registry utilities
# ----------------------------------------------------------------------

_SOURCE_REGISTRY: Dict[str, Type[TileSource]] = {}


def register_source(driver: str):
    """Decorator for registering tile source drivers."""

    def decorator(cls: Type[TileSource]) -> Type[TileSource]:
        _SOURCE_REGISTRY[driver] = cls
        cls.driver = driver
        return cls

    return decorator


def detect_driver(name: str, fallback: Optional[str] = None) -> str:
    """
    Infer the driver from a pseudo file name or a service URL.

    ``"imagery.osgearth_wms"`` selects the driver accepting the
    ``osgearth_wms`` extension; a URL with ``SERVICE=WMS`` in its query
    selects ``wms``.
    """

    parsed = urlparse(name)
    extension = PurePosixPath(parsed.path).suffix.lstrip(".").lower()
    if extension:
        for driver, cls in _SOURCE_REGISTRY.items():
            if cls.accepts_extension(extension):
                return driver

    query = parse_qs(parsed.query.lower())
    if "service" in query and query["service"][0] in _SOURCE_REGISTRY:
        return query["service"][0]

    if fallback is not None:
        return fallback

    raise ValueError(f"Unable to detect tile source driver for: {name}")


def get_source(driver: str, **options: Any) -> TileSource:
    """Instantiate the tile source registered under ``driver``."""

    try:
        source_cls = _SOURCE_REGISTRY[driver.lower()]
    except KeyError as exc:
        raise ValueError(f"No tile source registered for driver {driver!r}") from exc

    return source_cls.from_options(**options)
