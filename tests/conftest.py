"""
Shared test configuration, fixtures, and markers for wmstiles tests.
"""

import pytest
from io import BytesIO

import numpy as np
from PIL import Image as PILImage
from pytest_httpserver import HTTPServer


def pytest_configure(config):
    """Configure test markers."""
    config.addinivalue_line("markers", "net: marks tests requiring network")
    config.addinivalue_line("markers", "unit: marks unit tests (fast, pure logic)")
    config.addinivalue_line("markers", "integration: marks integration tests")


CAPABILITIES_XML = """<?xml version="1.0" encoding="UTF-8"?>
<WMT_MS_Capabilities version="1.1.1">
  <Service>
    <Name>OGC:WMS</Name>
    <Title>Example WMS</Title>
    <Abstract>Test service</Abstract>
  </Service>
  <Capability>
    <Request>
      <GetCapabilities><Format>application/vnd.ogc.wms_xml</Format></GetCapabilities>
      <GetMap>
        <Format>application/vnd.google-earth.kml+xml</Format>
        <Format>image/jpeg</Format>
        <Format>image/png</Format>
      </GetMap>
    </Request>
    <Layer>
      <Title>Root layer</Title>
      <SRS>EPSG:4326 EPSG:3857</SRS>
      <LatLonBoundingBox minx="-180" miny="-90" maxx="180" maxy="90"/>
      <Layer>
        <Name>basic</Name>
        <Title>Basic world map</Title>
      </Layer>
      <Layer>
        <Name>srtm</Name>
        <Title>SRTM elevation</Title>
        <SRS>EPSG:32633</SRS>
        <LatLonBoundingBox minx="10" miny="40" maxx="20" maxy="50"/>
      </Layer>
    </Layer>
  </Capability>
</WMT_MS_Capabilities>
"""

TILE_SERVICE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<WMS_Tile_Service version="0.1.0">
  <Service>
    <Name>WMS</Name>
    <Title>JPL tiled WMS</Title>
  </Service>
  <TiledPatterns>
    <LatLonBoundingBox minx="-180" miny="-90" maxx="180" maxy="90"/>
    <TiledGroup>
      <Name>Global Mosaic</Name>
      <Title>Global mosaic, visual</Title>
      <LatLonBoundingBox minx="-180" miny="-90" maxx="180" maxy="90"/>
      <TilePattern>request=GetMap&amp;layers=global_mosaic&amp;srs=EPSG:4326&amp;format=image/jpeg&amp;styles=visual&amp;width=512&amp;height=512&amp;bbox=-180,-166,76,90</TilePattern>
      <TilePattern>request=GetMap&amp;layers=global_mosaic&amp;srs=EPSG:4326&amp;format=image/jpeg&amp;styles=visual&amp;width=512&amp;height=512&amp;bbox=-180,-38,-52,90</TilePattern>
      <TilePattern>request=GetMap&amp;layers=global_mosaic&amp;srs=EPSG:4326&amp;format=image/png&amp;styles=visual&amp;width=256&amp;height=256&amp;bbox=-180,-166,76,90</TilePattern>
    </TiledGroup>
  </TiledPatterns>
</WMS_Tile_Service>
"""


@pytest.fixture
def capabilities_xml():
    return CAPABILITIES_XML


@pytest.fixture
def tile_service_xml():
    return TILE_SERVICE_XML


@pytest.fixture
def fake_server():
    """Programmable server standing in for a WMS."""
    with HTTPServer(host="127.0.0.1", port=0) as server:
        yield server


@pytest.fixture
def png_bytes():
    """Encode a numpy array as PNG."""

    def encode(array: np.ndarray) -> bytes:
        buffer = BytesIO()
        PILImage.fromarray(array).save(buffer, format="PNG")
        return buffer.getvalue()

    return encode

