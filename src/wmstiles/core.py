"""
Spatial reference and URL helpers shared by the resolver and the readers.
"""

import logging
from functools import lru_cache
from typing import Optional

from pyproj import CRS
from pyproj.exceptions import CRSError

logger = logging.getLogger(__name__)

# Codes that predate EPSG:3857 but describe the same spherical mercator.
MERCATOR_ALIASES = frozenset({"EPSG:3857", "EPSG:900913", "EPSG:3785", "EPSG:102113", "EPSG:102100"})

# WMS spellings of lon/lat WGS84 that PROJ only knows as OGC:CRS84.
SRS_ALIASES = {
    "CRS:84": "OGC:CRS84",
    "CRS84": "OGC:CRS84",
    "URN:OGC:DEF:CRS:OGC:1.3:CRS84": "OGC:CRS84",
    "URN:OGC:DEF:CRS:OGC::CRS84": "OGC:CRS84",
}


# Spatial reference operations


@lru_cache(maxsize=128)
def parse_srs(srs: str) -> Optional[CRS]:
    """
    Parse an SRS string (``EPSG:4326``, ``CRS:84``, WKT, ...) with pyproj.

    Args:
        srs: Spatial reference as given by the service or the caller

    Returns:
        The pyproj CRS, or None if pyproj does not understand ``srs``
    """
    if not srs:
        return None
    try:
        return CRS.from_user_input(SRS_ALIASES.get(srs.strip().upper(), srs))
    except CRSError:
        logger.debug("Unable to parse SRS '%s'", srs)
        return None


def is_geographic(srs: str) -> bool:
    """Return True if ``srs`` is a geographic (lat/long) reference system."""
    crs = parse_srs(srs)
    return crs is not None and crs.is_geographic


def is_mercator(srs: str) -> bool:
    """Return True if ``srs`` is spherical (web) mercator."""
    if srs.strip().upper() in MERCATOR_ALIASES:
        return True
    crs = parse_srs(srs)
    mercator = parse_srs("EPSG:3857")
    return crs is not None and mercator is not None and crs.equals(mercator, ignore_axis_order=True)


def srs_equivalent(first: str, second: str) -> bool:
    """
    Check whether two SRS strings describe the same reference system.

    Axis order is ignored, so ``EPSG:4326`` and ``CRS:84`` are equivalent.
    """
    if first.strip().upper() == second.strip().upper():
        return True
    if is_mercator(first) and is_mercator(second):
        return True

    crs_first = parse_srs(first)
    crs_second = parse_srs(second)
    if crs_first is None or crs_second is None:
        return False
    return crs_first.equals(crs_second, ignore_axis_order=True)


# URL operations


def query_separator(prefix: str) -> str:
    """Separator to use when appending parameters to ``prefix``."""
    return "?" if "?" not in prefix else "&"


def append_query(prefix: str, query: str) -> str:
    """
    Append a raw query fragment to a service URL prefix.

    Args:
        prefix: Service URL, possibly already holding a query string
        query: Fragment such as ``SERVICE=WMS&REQUEST=GetCapabilities``

    Returns:
        ``prefix`` + ``?`` or ``&`` + ``query``
    """
    return f"{prefix}{query_separator(prefix)}{query}"
