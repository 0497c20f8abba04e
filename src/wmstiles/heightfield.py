"""Conversion of decoded elevation images into heightfields."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, cast

import numpy as np
import xarray as xr
from numpy.typing import NDArray

from .types import GeoExtent
from .typing import HeightField, Image

logger = logging.getLogger(__name__)

NDArrayFloat = NDArray[np.floating[Any]]

# Anything beyond this magnitude is a no-data sentinel rather than a height
NO_DATA_THRESHOLD = 1e20


class ImageToHeightFieldConverter:
    """Turns single-band elevation images into scaled heightfields.

    Row 0 of the resulting heightfield is the southern edge, matching the
    ``y`` coordinate that increases northwards.
    """

    def __init__(self, no_data_value: Optional[float] = None) -> None:
        self.no_data_value = no_data_value

    def convert(
        self,
        image: Optional[Image],
        scale_factor: float = 1.0,
        extent: Optional[GeoExtent] = None,
    ) -> Optional[HeightField]:
        """
        Convert ``image`` to heights multiplied by ``scale_factor``.

        Args:
            image: Decoded image; only the first band is used
            scale_factor: Multiplier converting stored values to meters
            extent: Geographic extent of the image, used for coordinates

        Returns:
            Heightfield DataArray, or None when ``image`` is None
        """
        if image is None:
            return None

        data = np.asarray(image)
        if data.ndim == 3:
            data = data[..., 0]
        if data.ndim != 2:
            raise ValueError(f"Cannot build a heightfield from an image of shape {data.shape}")

        heights = cast(NDArrayFloat, np.flipud(data).astype(np.float32))
        invalid = ~np.isfinite(heights) | (np.abs(heights) > NO_DATA_THRESHOLD)
        if self.no_data_value is not None:
            invalid |= heights == self.no_data_value
        if invalid.any():
            logger.debug("Masking %d no-data heights", int(invalid.sum()))
            heights[invalid] = np.nan
        heights *= np.float32(scale_factor)

        rows, cols = heights.shape
        coords: Dict[str, Any] = {}
        attrs: Dict[str, Any] = {"scale_factor": float(scale_factor)}
        if extent is not None:
            coords = {
                "y": np.linspace(extent.min_y, extent.max_y, rows),
                "x": np.linspace(extent.min_x, extent.max_x, cols),
            }
            attrs["srs"] = extent.srs

        return xr.DataArray(heights, coords=coords, dims=("y", "x"), attrs=attrs)
