"""
Tests for the ingestion pipeline.
"""

import asyncio
import copy

import pytest

from railway_overlay.models import ClassifiedDataset
from railway_overlay.osm.ingestion import IngestionPipeline, detect_format, line_parts
from railway_overlay.taxonomy import ALL_BUCKET_KEYS, BucketKey, Context, RailCategory


def key(layer_id: str) -> BucketKey:
    return BucketKey.parse(layer_id)


class TestDetectFormat:
    """Tests for payload shape detection."""

    def test_geojson(self, geojson_payload):
        assert detect_format(geojson_payload) == "geojson"

    def test_overpass(self, overpass_payload):
        assert detect_format(overpass_payload) == "overpass"

    @pytest.mark.parametrize("payload", [
        None,
        [],
        {},
        {"version": 0.6},
        {"elements": "nope"},
        {"type": "Feature"},
    ])
    def test_unsupported(self, payload):
        assert detect_format(payload) is None


class TestOverpassMode:
    """Tests for raw-element ingestion."""

    @pytest.mark.asyncio
    async def test_buckets(self, overpass_payload):
        dataset = await IngestionPipeline().process_elements(overpass_payload)
        assert dataset.source_format == "overpass"
        assert dataset.counts() == {
            "subway_tunnel": 1,
            "rail_yard_surface": 1,
            "tram_bridge": 1,
            "platform_surface": 1,
        }

    @pytest.mark.asyncio
    async def test_line_properties(self, overpass_payload):
        dataset = await IngestionPipeline().process_elements(overpass_payload)
        (line,) = dataset.features(key("subway_tunnel"))
        assert line.coordinates == ((-74.00, 40.70), (-74.01, 40.71), (-74.02, 40.72))
        assert line.properties.railway == "subway"
        assert line.properties.context == "tunnel"
        assert (line.properties.name, line.properties.ref, line.properties.operator) == ("Line 1", "1", "Metro")

    @pytest.mark.asyncio
    async def test_rail_yard_is_kept(self, overpass_payload):
        dataset = await IngestionPipeline().process_elements(overpass_payload)
        (line,) = dataset.features(key("rail_yard_surface"))
        assert line.properties.railway == "rail_yard"

    @pytest.mark.asyncio
    async def test_stations_from_nodes(self, overpass_payload):
        dataset = await IngestionPipeline().process_elements(overpass_payload)
        assert [s.properties.name for s in dataset.stations] == ["Central", "Station"]
        central = dataset.stations[0]
        assert central.properties.line == "A"
        assert central.geometry.coordinates == (-74.01, 40.71)

    @pytest.mark.asyncio
    async def test_small_chunks_same_result(self, overpass_payload):
        big = await IngestionPipeline(chunk_size=5000).process_elements(overpass_payload)
        small = await IngestionPipeline(chunk_size=2).process_elements(overpass_payload)
        assert small.counts() == big.counts()
        assert small.stations == big.stations

    @pytest.mark.asyncio
    async def test_yields_between_chunks(self, overpass_payload):
        """Other tasks get to run while a large payload is ingested."""
        events = []

        async def ingest():
            dataset = await IngestionPipeline(chunk_size=1).process_elements(overpass_payload)
            events.append("done")
            return dataset

        async def ticker():
            for _ in range(3):
                events.append("tick")
                await asyncio.sleep(0)

        dataset, _ = await asyncio.gather(ingest(), ticker())
        assert events.index("done") == len(events) - 1
        assert events.count("tick") == 3
        assert dataset.total_lines == 4

    @pytest.mark.asyncio
    async def test_malformed_elements_skipped(self):
        payload = {"elements": [
            {"type": "node", "id": 1, "lat": 1.0, "lon": 1.0},
            {"type": "node", "id": 2},
            {"type": "node", "id": 3, "lat": 2.0, "lon": 2.0},
            {"type": "way", "id": 10, "nodes": [], "tags": {"railway": "rail"}},
            {"type": "way", "id": 11, "tags": {"railway": "rail"}},
            {"type": "way", "id": 12, "nodes": [1, 2, 3], "tags": {"railway": "rail"}},
        ]}
        dataset = await IngestionPipeline().process_elements(payload)
        (line,) = dataset.features(key("rail_surface"))
        assert line.coordinates == ((1.0, 1.0), (2.0, 2.0))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", [
        None,
        "node",
        42,
        {"type": "node", "id": 7, "lat": 5.0, "lon": 5.0, "tags": ["railway"]},
        {"type": "node", "id": [7], "lat": 5.0, "lon": 5.0},
        {"type": "way", "id": 20, "nodes": 5, "tags": {"railway": "rail"}},
        {"type": "way", "id": 21, "nodes": [1, 3], "tags": "railway=rail"},
        {"type": "way", "id": 22, "nodes": [[1], {"id": 3}, True], "tags": {"railway": "rail"}},
    ])
    async def test_wrongly_typed_elements_skipped(self, bad):
        payload = {"elements": [
            bad,
            {"type": "node", "id": 1, "lat": 1.0, "lon": 1.0},
            {"type": "node", "id": 3, "lat": 2.0, "lon": 2.0},
            {"type": "way", "id": 12, "nodes": [1, 3], "tags": {"railway": "rail"}},
        ]}
        dataset = await IngestionPipeline().process_elements(payload)
        assert dataset.counts() == {"rail_surface": 1}
        assert dataset.stations == []

    @pytest.mark.asyncio
    async def test_input_not_mutated(self, overpass_payload):
        before = copy.deepcopy(overpass_payload)
        await IngestionPipeline().process_elements(overpass_payload)
        assert overpass_payload == before

    @pytest.mark.asyncio
    async def test_empty_elements(self):
        dataset = await IngestionPipeline().process_elements({"elements": []})
        assert dataset.total_lines == 0
        assert dataset.stations == []


class TestGeoJSONMode:
    """Tests for FeatureCollection ingestion."""

    def test_buckets(self, geojson_payload):
        dataset = IngestionPipeline().process_geojson(geojson_payload)
        assert dataset.source_format == "geojson"
        assert dataset.counts() == {
            "light_rail_bridge": 1,
            "abandoned_tunnel": 2,
            "platform_surface": 1,
            "rail_surface": 1,
        }

    def test_multilinestring_split_into_parts(self, geojson_payload):
        dataset = IngestionPipeline().process_geojson(geojson_payload)
        parts = dataset.features(key("abandoned_tunnel"))
        assert [len(p.coordinates) for p in parts] == [2, 3]
        assert all(p.properties.railway == "abandoned" for p in parts)

    def test_polygon_becomes_exterior_ring(self, geojson_payload):
        dataset = IngestionPipeline().process_geojson(geojson_payload)
        (platform,) = dataset.features(key("platform_surface"))
        assert len(platform.coordinates) == 4
        assert platform.coordinates[0] == platform.coordinates[-1]

    def test_stations(self, geojson_payload):
        dataset = IngestionPipeline().process_geojson(geojson_payload)
        (station,) = dataset.stations
        assert station.properties.name == "Little Halt"
        assert station.properties.line == "R1;R2"

    def test_viaduct_not_a_bridge_in_geojson(self, geojson_payload):
        dataset = IngestionPipeline().process_geojson(geojson_payload)
        assert dataset.features(key("rail_bridge")) == []
        assert len(dataset.features(key("rail_surface"))) == 1

    def test_invalid_geometry_dropped(self):
        collection = {"type": "FeatureCollection", "features": [
            {"properties": {"railway": "rail"}, "geometry": {"type": "LineString", "coordinates": [[0, 0]]}},
            {"properties": {"railway": "rail"}, "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 1]]]}},
            {"properties": {"railway": "rail"}, "geometry": {"type": "LineString", "coordinates": []}},
            "not a feature",
            {"properties": {"railway": "rail"}, "geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}},
        ]}
        dataset = IngestionPipeline().process_geojson(collection)
        assert dataset.total_lines == 1

    def test_multilinestring_short_part_keeps_the_rest(self):
        collection = {"type": "FeatureCollection", "features": [
            {"properties": {"railway": "rail"},
             "geometry": {"type": "MultiLineString", "coordinates": [[[0, 0], [1, 1]], [[2, 2]], []]}},
        ]}
        dataset = IngestionPipeline().process_geojson(collection)
        (line,) = dataset.features(key("rail_surface"))
        assert line.coordinates == ((0.0, 0.0), (1.0, 1.0))

    @pytest.mark.parametrize("feature", [
        {"properties": {"railway": "rail"}, "geometry": "LineString"},
        {"properties": ["railway"], "geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}},
        {"properties": "station", "geometry": {"type": "Point", "coordinates": [0, 0]}},
        {"properties": {"railway": "station"}, "geometry": {"type": "Point", "coordinates": 5}},
        {"properties": {"railway": "rail"}, "geometry": {"type": "MultiLineString", "coordinates": 3}},
        None,
    ])
    def test_wrongly_typed_features_skipped(self, feature):
        collection = {"type": "FeatureCollection", "features": [
            feature,
            {"properties": {"railway": "tram"}, "geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}},
        ]}
        dataset = IngestionPipeline().process_geojson(collection)
        assert dataset.counts() == {"tram_surface": 1}
        assert dataset.stations == []

    def test_features_not_a_list(self):
        collection = {"type": "FeatureCollection", "features": 12}
        assert IngestionPipeline().process_geojson(collection).total_lines == 0

    def test_missing_properties(self):
        collection = {"type": "FeatureCollection", "features": [
            {"geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}},
        ]}
        assert IngestionPipeline().process_geojson(collection).total_lines == 0


class TestDispatch:
    """Tests for IngestionPipeline.process."""

    @pytest.mark.asyncio
    async def test_unsupported_payload_is_none(self):
        assert await IngestionPipeline().process({"version": 0.6}) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fixture", ["overpass_payload", "geojson_payload"])
    async def test_idempotent(self, fixture, request):
        payload = request.getfixturevalue(fixture)
        pipeline = IngestionPipeline()
        first = await pipeline.process(payload)
        for _ in range(3):
            again = await pipeline.process(payload)
            assert again.counts() == first.counts()
            assert len(again.stations) == len(first.stations)
            assert again is not first

    def test_chunk_size_must_be_positive(self):
        with pytest.raises(ValueError):
            IngestionPipeline(chunk_size=0)


class TestClassifiedDataset:
    """Tests for the dataset container."""

    def test_all_buckets_preallocated(self):
        dataset = ClassifiedDataset()
        assert set(dataset.buckets) == set(ALL_BUCKET_KEYS)
        assert dataset.counts() == {}

    def test_add_line_rejects_unknown_key(self, geojson_payload):
        dataset = IngestionPipeline().process_geojson(geojson_payload)
        line = dataset.features(key("rail_surface"))[0]
        with pytest.raises(KeyError):
            dataset.add_line(("monorail", "surface"), line)

    def test_feature_collections(self, geojson_payload):
        collections = IngestionPipeline().process_geojson(geojson_payload).to_feature_collections()
        assert set(collections) == {
            "light_rail_bridge", "abandoned_tunnel", "platform_surface", "rail_surface", "stations",
        }
        bridge = collections["light_rail_bridge"]
        assert bridge["type"] == "FeatureCollection"
        assert bridge["features"][0]["geometry"]["type"] == "LineString"
        assert bridge["features"][0]["properties"]["context"] == "bridge"


def test_line_parts_passes_3d_coordinates():
    parts = list(line_parts({"type": "LineString", "coordinates": [[0, 0, 5], [1, 1, 6]]}))
    assert parts == [[(0.0, 0.0), (1.0, 1.0)]]


def test_subway_key_helper():
    assert key("subway_tunnel") == BucketKey(RailCategory.SUBWAY, Context.TUNNEL)
