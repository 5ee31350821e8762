"""
Pydantic models for classified railway features
Line and station features serialize to GeoJSON Feature objects
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from .taxonomy import ALL_BUCKET_KEYS, BucketKey


# ============================================================
# GeoJSON Types
# ============================================================

class GeoJSONPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["Point"] = "Point"
    coordinates: Tuple[float, float]  # (longitude, latitude)


class GeoJSONLineString(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["LineString"] = "LineString"
    coordinates: Tuple[Tuple[float, float], ...]  # ((lon, lat), ...)

    @field_validator("coordinates")
    @classmethod
    def _at_least_two_points(cls, value):
        if len(value) < 2:
            raise ValueError("a line needs at least 2 coordinates")
        return value


# ============================================================
# Features
# ============================================================

class LineProperties(BaseModel):
    model_config = ConfigDict(frozen=True)

    railway: str  # final category, e.g. rail_yard
    context: str
    name: str = ""
    ref: str = ""
    operator: str = ""


class LineFeature(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["Feature"] = "Feature"
    geometry: GeoJSONLineString
    properties: LineProperties

    @property
    def coordinates(self) -> Tuple[Tuple[float, float], ...]:
        return self.geometry.coordinates

    def to_geojson(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class StationProperties(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "Station"
    railway: str = ""  # raw subtype: station, halt, tram_stop, ...
    network: str = ""
    operator: str = ""
    line: str = ""
    ref: str = ""
    platforms: str = ""


class StationFeature(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["Feature"] = "Feature"
    geometry: GeoJSONPoint
    properties: StationProperties

    def to_geojson(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# ============================================================
# Classified Dataset
# ============================================================

def _empty_buckets() -> Dict[BucketKey, List[LineFeature]]:
    return {key: [] for key in ALL_BUCKET_KEYS}


@dataclass
class ClassifiedDataset:
    """Line features partitioned by bucket key, plus station points"""
    buckets: Dict[BucketKey, List[LineFeature]] = field(default_factory=_empty_buckets)
    stations: List[StationFeature] = field(default_factory=list)
    source_format: Optional[str] = None  # "geojson" or "overpass"

    def add_line(self, key: BucketKey, feature: LineFeature) -> None:
        """Append a line to its bucket. Raises KeyError for a key outside the taxonomy."""
        self.buckets[key].append(feature)

    def features(self, key: BucketKey) -> List[LineFeature]:
        return self.buckets.get(key, [])

    def counts(self) -> Dict[str, int]:
        """Feature count per layer id, non-empty buckets only"""
        return {
            key.layer_id: len(features)
            for key, features in self.buckets.items()
            if features
        }

    @property
    def total_lines(self) -> int:
        return sum(len(features) for features in self.buckets.values())

    def to_feature_collections(self) -> Dict[str, Dict[str, Any]]:
        """Render-ready FeatureCollections keyed by layer id, stations under 'stations'"""
        collections = {
            key.layer_id: {
                "type": "FeatureCollection",
                "features": [f.to_geojson() for f in features],
            }
            for key, features in self.buckets.items()
            if features
        }
        collections["stations"] = {
            "type": "FeatureCollection",
            "features": [s.to_geojson() for s in self.stations],
        }
        return collections
