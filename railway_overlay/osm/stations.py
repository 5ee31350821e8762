"""
Station extraction

Turns station-like tagged points into normalized StationFeature records
"""

from typing import Any, Dict, Mapping, Optional, Union

from ..models import GeoJSONPoint, StationFeature, StationProperties
from ..taxonomy import LINE_TAG_FALLBACK, STATION_SUBTYPES
from .models import OSMNode
from .tags import TagBag


STOP_POSITION = "stop_position"


def station_subtype(tags: TagBag) -> Optional[str]:
    """Railway subtype if the point is station-like, else None"""
    railway = tags.get_str("railway")
    if railway in STATION_SUBTYPES:
        return railway
    if tags.get_str("public_transport") == STOP_POSITION:
        return railway or STOP_POSITION
    return None


def extract_station(
    tags: Union[TagBag, Mapping[str, Any]],
    lon: float,
    lat: float
) -> Optional[StationFeature]:
    """
    Build a station record from a tagged point

    Args:
        tags: Point tags
        lon: Longitude
        lat: Latitude

    Returns:
        StationFeature, or None if the point is not station-like
    """
    if not isinstance(tags, TagBag):
        tags = TagBag(tags)

    subtype = station_subtype(tags)
    if subtype is None:
        return None

    properties = StationProperties(
        name=tags.get_str("name", "Station"),
        railway=subtype,
        network=tags.get_str("network"),
        operator=tags.get_str("operator"),
        line=tags.first_of(LINE_TAG_FALLBACK),
        ref=tags.get_str("ref"),
        platforms=tags.first_of(("platforms", "public_transport:platforms")),
    )
    return StationFeature(
        geometry=GeoJSONPoint(coordinates=(lon, lat)),
        properties=properties,
    )


class StationExtractor:
    """Extracts stations from raw nodes and GeoJSON points"""

    @staticmethod
    def from_node(node: OSMNode) -> Optional[StationFeature]:
        if not node.tags:
            return None
        return extract_station(node.tags, node.lon, node.lat)

    @staticmethod
    def from_feature(feature: Dict[str, Any]) -> Optional[StationFeature]:
        """GeoJSON Point feature -> station, None for anything else"""
        geometry = feature.get("geometry") or {}
        properties = feature.get("properties") or {}
        if not isinstance(geometry, dict) or not isinstance(properties, dict):
            return None
        if geometry.get("type") != "Point":
            return None
        coords = geometry.get("coordinates") or []
        if not isinstance(coords, (list, tuple)) or len(coords) < 2:
            return None
        try:
            lon, lat = float(coords[0]), float(coords[1])
        except (TypeError, ValueError):
            return None
        return extract_station(properties, lon, lat)
