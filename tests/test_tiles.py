"""
Tests for wmstiles.tiles module.

Tests image fetching and decoding.
"""

import logging
import socket

import numpy as np
import pytest
import tifffile
from PIL import Image as PILImage

from wmstiles.tiles import (
    HTTPImageLoader,
    ReadOptions,
    decodable_extensions,
    decoder_for,
    fetch_document,
    fetch_tile,
)
from wmstiles.types import TileRequest


SERVICE_EXCEPTION = (
    '<?xml version="1.0"?><ServiceExceptionReport version="1.1.1">'
    '<ServiceException code="LayerNotDefined">Unknown layer</ServiceException>'
    "</ServiceExceptionReport>"
)


@pytest.fixture
def unused_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestFetchTile:
    """Single blocking fetches."""

    def test_fetch_tile_success(self, fake_server):
        fake_server.expect_request("/tile").respond_with_data(b"tile bytes", content_type="image/png")

        response = fetch_tile(TileRequest(url=fake_server.url_for("/tile")))

        assert response.success
        assert response.status_code == 200
        assert response.data == b"tile bytes"
        assert response.content_type == "image/png"

    def test_fetch_tile_http_error(self, fake_server):
        fake_server.expect_request("/tile").respond_with_data("missing", status=404)

        response = fetch_tile(TileRequest(url=fake_server.url_for("/tile")))

        assert not response.success
        assert response.status_code == 404
        assert response.error_message.startswith("HTTP 404")

    def test_fetch_tile_network_error(self, unused_port):
        response = fetch_tile(TileRequest(url=f"http://127.0.0.1:{unused_port}/tile", timeout=2))

        assert not response.success
        assert response.status_code == 0
        assert response.error_message.startswith("Network error")

    def test_fetch_tile_sends_headers(self, fake_server):
        fake_server.expect_request("/tile", headers={"X-Api-Key": "secret"}).respond_with_data(b"ok")

        response = fetch_tile(TileRequest(url=fake_server.url_for("/tile"), headers={"X-Api-Key": "secret"}))

        assert response.success

    def test_fetch_local_file(self, tmp_path):
        path = tmp_path / "tile.png"
        path.write_bytes(b"local")

        response = fetch_tile(TileRequest(url=str(path)))

        assert response.success
        assert response.data == b"local"
        assert response.content_type == "image/png"

    def test_fetch_document(self, fake_server, tmp_path):
        fake_server.expect_request("/doc").respond_with_data("<xml/>")

        assert fetch_document(fake_server.url_for("/doc")) == b"<xml/>"
        assert fetch_document((tmp_path / "missing.xml").as_uri()) is None

    def test_url_required(self):
        with pytest.raises(ValueError, match="URL is required"):
            fetch_tile(TileRequest(url=""))


class TestDecoders:
    """Decoder selection."""

    def test_decodable_extensions(self):
        assert decodable_extensions() == ["png", "jpeg", "jpg", "gif", "tiff", "tif"]

    def test_content_type_wins(self):
        assert decoder_for("image/png", "http://host/wms?BBOX=0,0,1,1&.jpeg") is decoder_for("image/png")

    def test_generic_types_fall_back_to_uri_extension(self):
        assert decoder_for("application/octet-stream", "http://host/wms?x&.png") is decoder_for("image/png")
        assert decoder_for("", "http://host/wms?x&.tif") is decoder_for("image/tiff")
        assert decoder_for("image/x-unknown", "http://host/wms?x&.gif") is decoder_for("image/gif")

    def test_service_exceptions_are_not_images(self):
        assert decoder_for("application/vnd.ogc.se_xml", "http://host/wms?x&.png") is None
        assert decoder_for("text/xml; charset=utf-8", "http://host/wms?x&.png") is None
        assert decoder_for("", "http://host/wms") is None


class TestHTTPImageLoader:
    """Loading decoded images."""

    def test_read_png(self, fake_server, png_bytes):
        pixels = np.arange(16, dtype=np.uint8).reshape(4, 4)
        fake_server.expect_request("/wms").respond_with_data(png_bytes(pixels), content_type="image/png")

        image = HTTPImageLoader().read_image(fake_server.url_for("/wms") + "?BBOX=0,0,1,1&.png")

        np.testing.assert_array_equal(image, pixels)

    def test_read_rgb_png_from_octet_stream(self, fake_server, png_bytes):
        pixels = np.zeros((2, 3, 3), dtype=np.uint8)
        pixels[..., 1] = 200
        fake_server.expect_request("/wms").respond_with_data(
            png_bytes(pixels), content_type="application/octet-stream"
        )

        image = HTTPImageLoader().read_image(fake_server.url_for("/wms") + "?x=1&.png")

        assert image.shape == (2, 3, 3)
        assert image[0, 0, 1] == 200

    def test_read_tiff(self, fake_server):
        heights = np.array([[1.5, 2.5], [3.5, 4.5]], dtype=np.float32)
        path_bytes = _tiff_bytes(heights)
        fake_server.expect_request("/wcs").respond_with_data(path_bytes, content_type="image/tiff")

        image = HTTPImageLoader().read_image(fake_server.url_for("/wcs"))

        np.testing.assert_allclose(image, heights)

    def test_service_exception_yields_none(self, fake_server, caplog):
        fake_server.expect_request("/wms").respond_with_data(
            SERVICE_EXCEPTION, content_type="application/vnd.ogc.se_xml"
        )

        with caplog.at_level(logging.INFO):
            image = HTTPImageLoader().read_image(fake_server.url_for("/wms") + "?x=1&.png")

        assert image is None
        assert "Unknown layer" in caplog.text

    def test_corrupt_image_yields_none(self, fake_server):
        fake_server.expect_request("/wms").respond_with_data(b"\x89PNG broken", content_type="image/png")

        assert HTTPImageLoader().read_image(fake_server.url_for("/wms")) is None

    def test_oversized_image_yields_none(self, fake_server, png_bytes, monkeypatch):
        monkeypatch.setattr(PILImage, "MAX_IMAGE_PIXELS", 100)
        fake_server.expect_request("/wms").respond_with_data(
            png_bytes(np.zeros((64, 64), dtype=np.uint8)), content_type="image/png"
        )

        assert HTTPImageLoader().read_image(fake_server.url_for("/wms")) is None

    def test_unreachable_server_yields_none(self, unused_port):
        loader = HTTPImageLoader()

        assert loader.read_image(f"http://127.0.0.1:{unused_port}/wms", ReadOptions(timeout=2)) is None

    def test_read_local_file(self, tmp_path, png_bytes):
        path = tmp_path / "tile.png"
        path.write_bytes(png_bytes(np.full((2, 2), 7, dtype=np.uint8)))

        image = HTTPImageLoader().read_image(path.as_uri())

        assert image.tolist() == [[7, 7], [7, 7]]


def _tiff_bytes(array):
    from io import BytesIO

    buffer = BytesIO()
    tifffile.imwrite(buffer, array)
    return buffer.getvalue()
