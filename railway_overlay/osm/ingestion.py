"""
Ingestion pipeline

Turns a raw payload (Overpass JSON or a GeoJSON FeatureCollection) into a
ClassifiedDataset. Overpass element lists are processed in fixed-size
chunks with a cooperative yield to the event loop between chunks, so a
host running on one thread stays responsive during large imports.
"""

import asyncio
from typing import Any, Dict, Iterator, List, Optional, Tuple

from loguru import logger
from shapely.geometry import shape
from shapely.errors import GEOSException

from ..models import ClassifiedDataset, GeoJSONLineString, LineFeature, LineProperties
from ..taxonomy import BucketKey
from .classifier import RailwayClassifier
from .models import OSMNode
from .parser import OSMResponseParser
from .stations import StationExtractor
from .tags import GEOJSON_FLAGS, OVERPASS_FLAGS, TagBag


FORMAT_GEOJSON = "geojson"
FORMAT_OVERPASS = "overpass"

LINE_GEOMETRY_TYPES = ("LineString", "MultiLineString", "Polygon")

DEFAULT_CHUNK_SIZE = 5000


def detect_format(payload: Any) -> Optional[str]:
    """'geojson', 'overpass' or None for any other shape"""
    if not isinstance(payload, dict):
        return None
    if payload.get("type") == "FeatureCollection":
        return FORMAT_GEOJSON
    if isinstance(payload.get("elements"), list):
        return FORMAT_OVERPASS
    return None


def build_line(key: BucketKey, tags: TagBag, coords) -> LineFeature:
    """Line feature carrying the resolved category and context"""
    return LineFeature(
        geometry=GeoJSONLineString(coordinates=tuple((float(x), float(y)) for x, y in coords)),
        properties=LineProperties(
            railway=key.category.value,
            context=key.context.value,
            name=tags.get_str("name"),
            ref=tags.get_str("ref"),
            operator=tags.get_str("operator"),
        ),
    )


def _to_shape(geometry: Dict[str, Any]):
    try:
        return shape(geometry)
    except (GEOSException, ValueError, TypeError, AttributeError, IndexError, KeyError) as e:
        logger.debug(f"Skipping invalid {geometry.get('type')} geometry: {e}")
        return None


def line_parts(geometry: Dict[str, Any]) -> Iterator[List[Tuple[float, float]]]:
    """
    Split a GeoJSON line-like geometry into drawable coordinate runs

    MultiLineString yields each part, Polygon yields its exterior ring.
    Runs with fewer than 2 points are skipped without losing the
    other parts of the same geometry.
    """
    if geometry.get("type") == "MultiLineString":
        parts = geometry.get("coordinates")
        if not isinstance(parts, list):
            logger.debug("Skipping MultiLineString without a part list")
            return
        for part in parts:
            yield from line_parts({"type": "LineString", "coordinates": part})
        return

    geom = _to_shape(geometry)
    if geom is None or geom.is_empty:
        return
    run = geom.exterior.coords if geom.geom_type == "Polygon" else geom.coords
    coords = [(c[0], c[1]) for c in run]
    if len(coords) >= 2:
        yield coords


class IngestionPipeline:
    """
    Classifies raw payloads into bucketed line features and stations

    Usage:
        pipeline = IngestionPipeline()
        dataset = await pipeline.process(payload)
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.parser = OSMResponseParser()
        self.station_extractor = StationExtractor()

    async def process(self, payload: Any) -> Optional[ClassifiedDataset]:
        """Dispatch on payload shape; None when it is neither format"""
        fmt = detect_format(payload)
        if fmt == FORMAT_GEOJSON:
            return self.process_geojson(payload)
        if fmt == FORMAT_OVERPASS:
            return await self.process_elements(payload)
        logger.warning("Payload is neither an Overpass export nor a GeoJSON FeatureCollection")
        return None
    def process_geojson(self, collection: Dict[str, Any]) -> ClassifiedDataset:
        """Single synchronous pass over a FeatureCollection"""
        dataset = ClassifiedDataset(source_format=FORMAT_GEOJSON)
        classifier = RailwayClassifier(GEOJSON_FLAGS)

        features = collection.get("features") or []
        if not isinstance(features, list):
            logger.debug(f"FeatureCollection features is a {type(features).__name__}, not a list")
            features = []

        for feature in features:
            if not isinstance(feature, dict):
                logger.debug(f"Skipping non-object feature: {feature!r:.80}")
                continue
            geometry = feature.get("geometry")
            if not geometry:
                continue
            properties = feature.get("properties") or {}
            if not isinstance(geometry, dict) or not isinstance(properties, dict):
                logger.debug(f"Skipping feature {feature.get('id')!r} with malformed geometry or properties")
                continue

            geom_type = geometry.get("type")
            if geom_type == "Point":
                station = self.station_extractor.from_feature(feature)
                if station is not None:
                    dataset.stations.append(station)
                continue

            if geom_type not in LINE_GEOMETRY_TYPES:
                continue

            tags = TagBag(properties)
            key = classifier.classify(tags)
            if key is None:
                continue
            for coords in line_parts(geometry):
                dataset.add_line(key, build_line(key, tags, coords))

        self._log_summary(dataset, classifier, features=len(features))
        return dataset

    async def process_elements(self, payload: Dict[str, Any]) -> ClassifiedDataset:
        """
        Two chunked passes over an Overpass element list

        Pass 1 indexes every node. Pass 2 resolves and classifies ways; it
        starts only after pass 1 has seen every element, so ways may
        reference nodes listed after them. Stations come from the node
        index once ways are done.
        """
        elements = payload.get("elements") or []
        dataset = ClassifiedDataset(source_format=FORMAT_OVERPASS)
        classifier = RailwayClassifier(OVERPASS_FLAGS)
        nodes: Dict[int, OSMNode] = {}

        for chunk in self.parser.iter_chunks(elements, self.chunk_size):
            for element in chunk:
                if not isinstance(element, dict):
                    logger.debug(f"Skipping non-object element: {element!r:.80}")
                    continue
                if element.get("type") != "node":
                    continue
                node = self.parser.parse_node(element)
                if node is not None:
                    nodes[node.id] = node
            await asyncio.sleep(0)

        way_count = 0
        railway_way_count = 0
        for chunk in self.parser.iter_chunks(elements, self.chunk_size):
            for element in chunk:
                if not isinstance(element, dict) or element.get("type") != "way":
                    continue
                way = self.parser.parse_way(element)
                if way is None:
                    continue
                way_count += 1

                tags = TagBag(way.tags)
                key = classifier.classify(tags)
                if key is None:
                    continue
                railway_way_count += 1

                coords = way.get_coordinates(nodes)
                if coords is None:
                    logger.debug(f"Way {way.id} has fewer than 2 resolvable nodes, dropping")
                    continue
                dataset.add_line(key, build_line(key, tags, coords))
            await asyncio.sleep(0)

        for node in nodes.values():
            station = self.station_extractor.from_node(node)
            if station is not None:
                dataset.stations.append(station)

        logger.debug(f"Indexed {len(nodes)} nodes, {way_count} ways ({railway_way_count} railway)")
        self._log_summary(dataset, classifier, features=len(elements))
        return dataset

    @staticmethod
    def _log_summary(dataset: ClassifiedDataset, classifier: RailwayClassifier, features: int) -> None:
        counts = ", ".join(f"{layer}={n}" for layer, n in sorted(dataset.counts().items())) or "none"
        logger.info(
            f"Classified {dataset.total_lines} lines and {len(dataset.stations)} stations "
            f"from {features} {dataset.source_format} records ({counts}); "
            f"dropped {classifier.dropped['unknown_category']} unknown railway categories"
        )
