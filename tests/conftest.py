"""
Shared fixtures: sample payloads and persistent store doubles
"""

import copy
from typing import Any, Dict, Optional

import pytest

from railway_overlay.exceptions import StorageError
from railway_overlay.storage import MemoryStore


OVERPASS_PAYLOAD = {
    "version": 0.6,
    "elements": [
        # Way listed before its nodes: resolution must still see them
        {"type": "way", "id": 100, "nodes": [1, 2, 3],
         "tags": {"railway": "subway", "tunnel": "yes", "name": "Line 1", "ref": "1", "operator": "Metro"}},
        {"type": "way", "id": 101, "nodes": [3, 4],
         "tags": {"railway": "rail", "service": "yard"}},
        {"type": "way", "id": 102, "nodes": [4, 5],
         "tags": {"railway": "tram", "bridge": "viaduct"}},
        {"type": "way", "id": 103, "nodes": [1, 999],
         "tags": {"railway": "rail"}},
        {"type": "way", "id": 104, "nodes": [1, 2],
         "tags": {"highway": "residential"}},
        {"type": "way", "id": 105, "nodes": [2, 5],
         "tags": {"public_transport": "platform"}},
        {"type": "way", "id": 106, "nodes": [2, 3],
         "tags": {"railway": "crossing"}},
        {"type": "node", "id": 1, "lat": 40.70, "lon": -74.00},
        {"type": "node", "id": 2, "lat": 40.71, "lon": -74.01,
         "tags": {"railway": "station", "name": "Central", "subway:line": "A"}},
        {"type": "node", "id": 3, "lat": 40.72, "lon": -74.02},
        {"type": "node", "id": 4, "lat": 40.73, "lon": -74.03,
         "tags": {"railway": "level_crossing"}},
        {"type": "node", "id": 5, "lat": 40.74, "lon": -74.04,
         "tags": {"public_transport": "stop_position", "tram": "yes"}},
        {"type": "relation", "id": 900, "members": []},
    ],
}


GEOJSON_PAYLOAD = {
    "type": "FeatureCollection",
    "features": [
        {"type": "Feature",
         "properties": {"railway": "light_rail", "bridge": True, "name": "Blue Line"},
         "geometry": {"type": "LineString", "coordinates": [[-74.0, 40.7], [-74.01, 40.71]]}},
        {"type": "Feature",
         "properties": {"railway": "disused", "layer": "-1"},
         "geometry": {"type": "MultiLineString", "coordinates": [
             [[-74.0, 40.7], [-74.01, 40.71]],
             [[-74.02, 40.72], [-74.03, 40.73], [-74.04, 40.74]],
         ]}},
        {"type": "Feature",
         "properties": {"public_transport": "platform"},
         "geometry": {"type": "Polygon", "coordinates": [[
             [-74.0, 40.7], [-74.0, 40.701], [-74.001, 40.701], [-74.0, 40.7],
         ]]}},
        {"type": "Feature",
         "properties": {"railway": "halt", "name": "Little Halt", "lines": "R1;R2"},
         "geometry": {"type": "Point", "coordinates": [-74.05, 40.75]}},
        {"type": "Feature",
         "properties": {"amenity": "cafe"},
         "geometry": {"type": "Point", "coordinates": [-74.06, 40.76]}},
        {"type": "Feature",
         "properties": {"railway": "rail", "bridge": "viaduct"},
         "geometry": {"type": "LineString", "coordinates": [[-74.1, 40.8], [-74.2, 40.9]]}},
        {"type": "Feature", "properties": {"railway": "rail"}, "geometry": None},
    ],
}


@pytest.fixture
def overpass_payload() -> Dict[str, Any]:
    return copy.deepcopy(OVERPASS_PAYLOAD)


@pytest.fixture
def geojson_payload() -> Dict[str, Any]:
    return copy.deepcopy(GEOJSON_PAYLOAD)


class CountingStore(MemoryStore):
    """MemoryStore that counts calls"""

    def __init__(self):
        super().__init__()
        self.get_calls = 0
        self.put_calls = 0

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        self.get_calls += 1
        return super().get(key)

    def put(self, key: str, value: Dict[str, Any]) -> bool:
        self.put_calls += 1
        return super().put(key, value)


class FailingStore(MemoryStore):
    """Store whose reads and/or writes always fail"""

    def __init__(self, fail_get: bool = False, fail_put: bool = False):
        super().__init__()
        self.fail_get = fail_get
        self.fail_put = fail_put

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        if self.fail_get:
            raise StorageError("disk unavailable")
        return super().get(key)

    def put(self, key: str, value: Dict[str, Any]) -> bool:
        if self.fail_put:
            raise StorageError("quota exceeded")
        return super().put(key, value)


class BlackHoleStore(MemoryStore):
    """Accepts writes but never returns them"""

    def put(self, key: str, value: Dict[str, Any]) -> bool:
        return True


@pytest.fixture
def counting_store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def failing_read_store() -> FailingStore:
    return FailingStore(fail_get=True)


@pytest.fixture
def failing_write_store() -> FailingStore:
    return FailingStore(fail_put=True)


@pytest.fixture
def black_hole_store() -> BlackHoleStore:
    return BlackHoleStore()
