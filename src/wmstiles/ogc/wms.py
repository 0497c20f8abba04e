"""
WMS GetMap request templates.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ..core import append_query
from ..errors import TemplateError
from ..types import ExtentLike, extent_bounds
from .tileservice import BBOX_PLACEHOLDERS, TilePattern

_CONVERSION = re.compile(r"%(.)")


class RequestTemplate(BaseModel):
    """A GetMap request with its bounding box left as four ``%f`` placeholders.

    Built once per tile source, then instantiated for every tile with
    :meth:`build_uri`. Literal ``%`` characters are kept escaped as ``%%``.
    """

    template: str
    finalized: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("template")
    @classmethod
    def validate_placeholders(cls, template: str) -> str:
        conversions = _CONVERSION.findall(template)
        placeholders = [c for c in conversions if c != "%"]
        if placeholders != ["f", "f", "f", "f"]:
            raise TemplateError(
                f"Request template must hold exactly four %f placeholders, got {placeholders!r}: {template}"
            )
        return template

    @classmethod
    def for_get_map(
        cls,
        prefix: str,
        layers: str,
        format: str,
        style: str,
        srs: str,
        tile_size: int,
        wms_format: Optional[str] = None,
    ) -> "RequestTemplate":
        """
        Create the WMS 1.1.1 GetMap template.

        Args:
            prefix: Service URL, possibly already holding a query string
            layers: Value of LAYERS
            format: Image extension; FORMAT becomes ``image/<format>``
            style: Value of STYLES
            srs: Value of SRS
            tile_size: WIDTH and HEIGHT in pixels
            wms_format: Explicit FORMAT value overriding ``image/<format>``

        Returns:
            Template ending in ``&BBOX=%f,%f,%f,%f``
        """
        query = (
            "SERVICE=WMS&VERSION=1.1.1&REQUEST=GetMap"
            f"&LAYERS={layers}"
            f"&FORMAT={wms_format or 'image/' + format}"
            f"&STYLES={style}"
            f"&SRS={srs}"
            f"&WIDTH={tile_size}"
            f"&HEIGHT={tile_size}"
        )
        return cls(template=append_query(_escape(prefix), _escape(query) + f"&BBOX={BBOX_PLACEHOLDERS}"))

    @classmethod
    def for_tile_pattern(cls, prefix: str, pattern: TilePattern) -> "RequestTemplate":
        """Template that replays a tile service pattern against ``prefix``."""
        return cls(template=append_query(_escape(prefix), pattern.prototype))

    def finalize(self, format: str) -> "RequestTemplate":
        """
        Append the ``&.<format>`` suffix.

        Older image readers pick a decoder from the URI's extension rather
        than the response's MIME type.
        """
        if self.finalized:
            raise TemplateError("Request template is already finalized")
        return RequestTemplate(template=f"{self.template}&.{_escape(format)}", finalized=True)

    def build_uri(self, extent: ExtentLike) -> str:
        """Substitute (min_x, min_y, max_x, max_y) into the template."""
        min_x, min_y, max_x, max_y = extent_bounds(extent)
        return self.template % (min_x, min_y, max_x, max_y)

    def __str__(self) -> str:
        return self.template


def _escape(text: str) -> str:
    return text.replace("%", "%%")
