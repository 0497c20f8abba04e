import logging

import pytest

from wmstiles.ogc.capabilities import Capabilities, WMSCapabilitiesParser
from wmstiles.ogc.tileservice import TileServiceParser
from wmstiles.registry import DEFAULT_REGISTRY
from wmstiles.service.config import WMSOptions
from wmstiles.service.resolver import ProfileResolver
from wmstiles.types import SpatialProfile

pytestmark = pytest.mark.unit


class FakeReader:
    """Reader returning a canned document and recording requested URLs."""

    def __init__(self, document=None):
        self.document = document
        self.urls = []

    def read(self, url):
        self.urls.append(url)
        return self.document


@pytest.fixture
def capabilities(capabilities_xml):
    return WMSCapabilitiesParser().parse(capabilities_xml)


@pytest.fixture
def tile_service(tile_service_xml):
    return TileServiceParser().parse(tile_service_xml)


def resolver_for(capabilities, tile_service=None):
    return ProfileResolver(FakeReader(capabilities), FakeReader(tile_service))


def options(**values):
    values.setdefault("url", "http://host/wms")
    return WMSOptions.from_options(values)


def test_missing_capabilities_fails_resolution(caplog):
    tileservice_reader = FakeReader()
    resolver = ProfileResolver(FakeReader(None), tileservice_reader)

    with caplog.at_level(logging.WARNING):
        assert resolver.resolve(None, options(layers="basic")) is None

    assert "GetCapabilities" in caplog.text
    assert tileservice_reader.urls == []


def test_documents_requested_from_derived_urls(capabilities):
    capabilities_reader, tileservice_reader = FakeReader(capabilities), FakeReader()
    resolver = ProfileResolver(capabilities_reader, tileservice_reader)

    resolver.resolve(None, options(url="http://host/cgi?map=world", layers="basic"))

    assert capabilities_reader.urls == ["http://host/cgi?map=world&SERVICE=WMS&VERSION=1.1.1&REQUEST=GetCapabilities"]
    assert tileservice_reader.urls == ["http://host/cgi?map=world&request=GetTileService"]


def test_configured_format_wins(capabilities):
    resolution = resolver_for(capabilities).resolve(None, options(layers="basic", format="png"))

    assert resolution.config.format == "png"
    assert "&FORMAT=image/png&" in resolution.template.template
    assert resolution.template.template.endswith("&.png")


def test_format_suggested_by_capabilities(capabilities):
    resolution = resolver_for(capabilities).resolve(None, options(layers="basic"))

    assert resolution.config.format == "jpeg"
    assert resolution.template.template.endswith("&.jpeg")


def test_format_defaults_to_png():
    capabilities = Capabilities(formats=["application/vnd.google-earth.kml+xml"])

    resolution = resolver_for(capabilities).resolve(None, options(layers="basic"))

    assert resolution.config.format == "png"


def test_srs_defaults_to_wgs84(capabilities):
    resolution = resolver_for(capabilities).resolve(None, options(layers="basic"))

    assert resolution.config.srs == "EPSG:4326"
    assert "&SRS=EPSG:4326&" in resolution.template.template


def test_map_profile_with_same_srs_is_reused(capabilities):
    map_profile = SpatialProfile.create("EPSG:4326", -180, -90, 180, 90, num_tiles_wide=2)

    resolution = resolver_for(capabilities).resolve(map_profile, options(layers="basic"))

    assert resolution.profile is map_profile


def test_global_layer_uses_registry_profile(capabilities):
    mercator = DEFAULT_REGISTRY["spherical-mercator"]

    resolution = resolver_for(capabilities).resolve(mercator, options(layers="basic"))

    assert resolution.profile is DEFAULT_REGISTRY.global_geodetic


def test_regional_layer_gets_its_own_profile(capabilities):
    resolution = resolver_for(capabilities).resolve(None, options(layers="srtm"))

    assert resolution.profile.srs == "EPSG:4326"
    assert resolution.profile.extent.as_tuple() == (10.0, 40.0, 20.0, 50.0)
    assert resolution.profile is not DEFAULT_REGISTRY.global_geodetic


def test_unknown_layer_falls_back_to_global_map_profile(capabilities):
    mercator = DEFAULT_REGISTRY["spherical-mercator"]

    resolution = resolver_for(capabilities).resolve(mercator, options(layers="missing"))

    assert resolution.profile is mercator


def test_unknown_layer_with_local_map_profile_has_no_profile(capabilities, caplog):
    local = SpatialProfile.create("EPSG:32633", 0, 0, 1000, 1000)

    with caplog.at_level(logging.WARNING):
        resolution = resolver_for(capabilities).resolve(local, options(layers="missing"))

    assert resolution is not None
    assert resolution.profile is None
    assert "Unable to determine a profile" in caplog.text


def test_projected_srs_without_layer_has_no_profile(capabilities):
    mercator = DEFAULT_REGISTRY["spherical-mercator"]

    resolution = resolver_for(capabilities).resolve(mercator, options(layers="missing", srs="EPSG:32633"))

    assert resolution.profile is None


def test_layer_lists_are_looked_up_as_one_name(capabilities):
    resolution = resolver_for(capabilities).resolve(None, options(layers="basic,srtm"))

    assert resolution.profile is None
    assert "&LAYERS=basic,srtm&" in resolution.template.template


def test_get_map_template_carries_options(capabilities):
    resolution = resolver_for(capabilities).resolve(
        None, options(layers="basic", style="night", format="png", default_tile_size=512)
    )

    assert resolution.template.finalized
    assert resolution.template.template == (
        "http://host/wms?SERVICE=WMS&VERSION=1.1.1&REQUEST=GetMap&LAYERS=basic&FORMAT=image/png"
        "&STYLES=night&SRS=EPSG:4326&WIDTH=512&HEIGHT=512&BBOX=%f,%f,%f,%f&.png"
    )


def test_matching_tile_service_overrides_profile_and_template(capabilities, tile_service):
    resolution = resolver_for(capabilities, tile_service).resolve(
        None,
        options(layers="global_mosaic", style="visual", format="jpeg", default_tile_size=512),
    )

    profile = resolution.profile
    assert profile.extent.as_tuple() == (-180.0, -166.0, 332.0, 90.0)
    assert (profile.num_tiles_wide, profile.num_tiles_high) == (2, 1)
    assert resolution.template.template == (
        "http://host/wms?request=GetMap&layers=global_mosaic&srs=EPSG:4326&format=image/jpeg"
        "&styles=visual&width=512&height=512&bbox=%f,%f,%f,%f&.jpeg"
    )


def test_tile_service_without_match_keeps_get_map(capabilities, tile_service):
    resolution = resolver_for(capabilities, tile_service).resolve(
        None, options(layers="basic", format="png")
    )

    assert resolution.profile is DEFAULT_REGISTRY.global_geodetic
    assert "REQUEST=GetMap&LAYERS=basic" in resolution.template.template


def test_tile_service_size_must_match(capabilities, tile_service):
    resolution = resolver_for(capabilities, tile_service).resolve(
        None, options(layers="global_mosaic", style="visual", format="jpeg")
    )

    assert "SERVICE=WMS" in resolution.template.template


def test_crs84_global_layer_uses_registry_profile(capabilities):
    resolution = resolver_for(capabilities).resolve(None, options(layers="basic", srs="CRS:84"))

    assert resolution.profile is DEFAULT_REGISTRY.global_geodetic
    assert "&SRS=CRS:84&" in resolution.template.template


def test_crs84_matches_wgs84_map_profile(capabilities):
    map_profile = SpatialProfile.create("EPSG:4326", -180, -90, 180, 90, num_tiles_wide=2)

    resolution = resolver_for(capabilities).resolve(map_profile, options(layers="missing", srs="CRS:84"))

    assert resolution.profile is map_profile


def test_crs84_unknown_layer_falls_back_to_global_map_profile(capabilities):
    mercator = DEFAULT_REGISTRY["spherical-mercator"]

    resolution = resolver_for(capabilities).resolve(mercator, options(layers="missing", srs="CRS:84"))

    assert resolution.profile is mercator


def test_tile_pattern_with_repeated_bbox_is_ignored(capabilities):
    tile_service = TileServiceParser().parse(
        "<WMS_Tile_Service><TiledPatterns><TiledGroup><TilePattern>"
        "request=GetMap&amp;layers=basic&amp;srs=EPSG:4326&amp;format=image/png&amp;styles="
        "&amp;width=256&amp;height=256&amp;bbox=-180,-90,0,90&amp;BBOX=-180,-90,0,90"
        "</TilePattern></TiledGroup></TiledPatterns></WMS_Tile_Service>"
    )

    resolution = resolver_for(capabilities, tile_service).resolve(None, options(layers="basic", format="png"))

    assert tile_service.groups[0].patterns == []
    assert resolution.profile is DEFAULT_REGISTRY.global_geodetic
    assert "SERVICE=WMS&VERSION=1.1.1&REQUEST=GetMap" in resolution.template.template
