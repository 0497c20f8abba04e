"""
Image fetching and decoding for WMS tile requests.
"""

from typing import Callable, Dict, List, Optional
from io import BytesIO
from pathlib import Path
from urllib.parse import unquote, urlparse
import logging
import tempfile

import numpy as np
import requests
from geotiff import GeoTiff
from tifffile import TiffFile
from PIL import Image as PILImage
from pydantic import BaseModel, Field

from .types import TileRequest, TileResponse
from .typing import Image

logger = logging.getLogger(__name__)

ImageDecoder = Callable[[bytes], Image]

# Extensions understood in FORMAT values and URI suffixes, in order of preference
EXTENSION_TYPES: Dict[str, str] = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "gif": "image/gif",
    "tiff": "image/tiff",
    "tif": "image/tiff",
}

_DECODER_REGISTRY: Dict[str, ImageDecoder] = {}


class ReadOptions(BaseModel):
    """Per-request options handed to an image loader."""

    headers: Dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for the server")


def fetch_tile(request: TileRequest, session: Optional[requests.Session] = None) -> TileResponse:
    """
    Fetch the bytes behind a tile request with one blocking call.

    ``file://`` URLs and plain paths are read from disk.

    Args:
        request: Tile request parameters
        session: Optional session to issue the request with

    Returns:
        Tile response with data or error information

    Raises:
        ValueError: For invalid request parameters
    """
    if not request.url:
        raise ValueError("URL is required")

    local_path = _local_path(request.url)
    if local_path is not None:
        return _read_local(local_path, request)

    # Prepare headers
    headers = dict(request.headers or {})
    if request.output_format:
        headers.setdefault('Accept', request.output_format)

    get = session.get if session is not None else requests.get
    try:
        logger.debug("Fetching %s", request.url)
        response = get(
            request.url,
            params=request.params or None,
            headers=headers,
            timeout=request.timeout,
        )
    except requests.RequestException as e:
        logger.debug("Request to %s failed: %s", request.url, e, exc_info=True)
        return TileResponse(
            data=b'',
            content_type='',
            status_code=0,
            headers={},
            url=request.url,
            success=False,
            error_message=f"Network error: {e}"
        )

    if response.status_code == 200:
        return TileResponse(
            data=response.content,
            content_type=response.headers.get('content-type', ''),
            status_code=response.status_code,
            headers=dict(response.headers),
            url=response.url,
            success=True
        )

    return TileResponse(
        data=b'',
        content_type=response.headers.get('content-type', ''),
        status_code=response.status_code,
        headers=dict(response.headers),
        url=response.url,
        success=False,
        error_message=f"HTTP {response.status_code}: {response.text[:200]}"
    )


def fetch_document(url: str, session: Optional[requests.Session] = None, timeout: float = 30.0) -> Optional[bytes]:
    """Return the body behind ``url``, or None if it cannot be fetched."""
    response = fetch_tile(TileRequest(url=url, timeout=timeout), session=session)
    if not response.success:
        logger.debug("Unable to read %s: %s", url, response.error_message)
        return None
    return response.data


def _local_path(url: str) -> Optional[Path]:
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if "://" not in url:
        return Path(url)
    return None


def _read_local(path: Path, request: TileRequest) -> TileResponse:
    try:
        data = path.read_bytes()
    except OSError as e:
        return TileResponse(
            data=b'',
            content_type='',
            status_code=0,
            headers={},
            url=request.url,
            success=False,
            error_message=f"File error: {e}"
        )
    return TileResponse(
        data=data,
        content_type=EXTENSION_TYPES.get(path.suffix.lstrip(".").lower(), ''),
        status_code=200,
        headers={},
        url=request.url,
        success=True
    )


# Decoding


def register_tile_decoder(mime_type: str, decoder: ImageDecoder) -> None:
    """Register an image decoder for a MIME type such as ``image/png``."""

    _DECODER_REGISTRY[mime_type.lower()] = decoder


def decodable_extensions() -> List[str]:
    """File extensions for which a decoder is registered, most preferred first."""
    return [ext for ext, mime in EXTENSION_TYPES.items() if mime in _DECODER_REGISTRY]


def decoder_for(content_type: str, uri: str = "") -> Optional[ImageDecoder]:
    """
    Pick the decoder for a response.

    The content type wins when it names a registered image type. Generic or
    missing types fall back to the extension at the end of ``uri``; any other
    type (typically a ``application/vnd.ogc.se_xml`` service exception) has
    no decoder.
    """
    mime = content_type.split(";")[0].strip().lower()
    if mime in _DECODER_REGISTRY:
        return _DECODER_REGISTRY[mime]
    if mime and not mime.startswith("image/") and mime != "application/octet-stream":
        return None

    extension = uri.rsplit(".", 1)[-1].lower() if "." in uri else ""
    fallback = EXTENSION_TYPES.get(extension)
    return _DECODER_REGISTRY.get(fallback) if fallback else None


def _decode_raster_image(data: bytes) -> Image:
    with BytesIO(data) as bio:
        with PILImage.open(bio) as img:
            return np.asarray(img)


def _decode_geotiff(data: bytes) -> Image:
    with tempfile.NamedTemporaryFile(suffix=".tif") as tmp:
        tmp.write(data)
        tmp.flush()
        try:
            tif = GeoTiff(tmp.name, as_crs=None)
            array = np.asarray(tif.read(), dtype=np.float32)
        except Exception:  # pragma: no cover - files without geokeys
            with TiffFile(tmp.name) as tif_file:
                array = np.asarray(tif_file.asarray(), dtype=np.float32)
    return array


class HTTPImageLoader:
    """Image loader that fetches over HTTP (or from disk) and decodes the body."""

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session or requests.Session()

    def read_image(self, uri: str, options: Optional[ReadOptions] = None) -> Optional[Image]:
        options = options or ReadOptions()
        request = TileRequest(url=uri, headers=dict(options.headers), timeout=options.timeout)
        response = fetch_tile(request, session=self.session)
        if not response.success:
            logger.info("Image request to %s failed: %s", uri, response.error_message)
            return None

        decoder = decoder_for(response.content_type, uri)
        if decoder is None:
            logger.info(
                "No image decoder for content type '%s' from %s: %s",
                response.content_type,
                uri,
                response.data[:200].decode("utf-8", errors="replace"),
            )
            return None

        try:
            return decoder(response.data)
        except (OSError, ValueError, PILImage.DecompressionBombError) as exc:
            logger.info("Unable to decode image from %s: %s", uri, exc)
            return None


register_tile_decoder("image/png", _decode_raster_image)
register_tile_decoder("image/jpeg", _decode_raster_image)
register_tile_decoder("image/gif", _decode_raster_image)
register_tile_decoder("image/tiff", _decode_geotiff)
