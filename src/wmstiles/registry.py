"""Catalog of well-known tiling profiles."""

from __future__ import annotations

from typing import Dict, Iterator, Mapping, Optional

from .types import GeoExtent, ProfileType, SpatialProfile

__all__ = ["ProfileRegistry", "DEFAULT_REGISTRY", "GLOBAL_GEODETIC", "SPHERICAL_MERCATOR"]

MERCATOR_HALF_WORLD = 20037508.342789244

GLOBAL_GEODETIC = SpatialProfile(
    srs="EPSG:4326",
    extent=GeoExtent(min_x=-180.0, min_y=-90.0, max_x=180.0, max_y=90.0, srs="EPSG:4326"),
    profile_type=ProfileType.GEODETIC,
    num_tiles_wide=2,
    num_tiles_high=1,
)

SPHERICAL_MERCATOR = SpatialProfile(
    srs="EPSG:3857",
    extent=GeoExtent(
        min_x=-MERCATOR_HALF_WORLD,
        min_y=-MERCATOR_HALF_WORLD,
        max_x=MERCATOR_HALF_WORLD,
        max_y=MERCATOR_HALF_WORLD,
        srs="EPSG:3857",
    ),
    profile_type=ProfileType.MERCATOR,
)


class ProfileRegistry(Mapping[str, SpatialProfile]):
    """Read-only, name-indexed set of shared profile instances.

    Consumers compare profiles by identity as well as by value, so the
    registry always hands out the same object for a given name.
    """

    def __init__(self, profiles: Optional[Mapping[str, SpatialProfile]] = None) -> None:
        self._profiles: Dict[str, SpatialProfile] = dict(profiles or {})

    def __getitem__(self, name: str) -> SpatialProfile:
        return self._profiles[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    @property
    def global_geodetic(self) -> SpatialProfile:
        return self._profiles["global-geodetic"]

    @property
    def spherical_mercator(self) -> SpatialProfile:
        return self._profiles["spherical-mercator"]


DEFAULT_REGISTRY = ProfileRegistry(
    {
        "global-geodetic": GLOBAL_GEODETIC,
        "spherical-mercator": SPHERICAL_MERCATOR,
    }
)
