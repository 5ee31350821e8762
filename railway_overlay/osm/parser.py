"""
Overpass element parser

Parses raw Overpass elements into OSMNode and OSMWay objects
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence

from loguru import logger

from .models import OSMNode, OSMWay


class OSMResponseParser:
    """Parses Overpass API element lists"""

    @staticmethod
    def iter_chunks(elements: Sequence[Dict[str, Any]], chunk_size: int) -> Iterator[Sequence[Dict[str, Any]]]:
        """Yield consecutive slices of at most chunk_size elements"""
        for start in range(0, len(elements), chunk_size):
            yield elements[start:start + chunk_size]

    @staticmethod
    def parse_node(element: Dict[str, Any]) -> Optional[OSMNode]:
        """Node element -> OSMNode, None if id/lat/lon are missing or tags are not a mapping"""
        tags = element.get("tags") or {}
        if not isinstance(tags, dict) or not _valid_ref(element.get("id")):
            logger.debug(f"Skipping malformed node element: {element.get('id')!r}")
            return None
        try:
            return OSMNode(
                id=element["id"],
                lat=float(element["lat"]),
                lon=float(element["lon"]),
                tags=tags
            )
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Skipping malformed node element: {element.get('id')!r}")
            return None

    @staticmethod
    def parse_way(element: Dict[str, Any]) -> Optional[OSMWay]:
        """Way element -> OSMWay, None without an id, a node list or mapping tags"""
        nodes = element.get("nodes") or []
        tags = element.get("tags") or {}
        if not isinstance(nodes, list) or not isinstance(tags, dict):
            logger.debug(f"Skipping malformed way element: {element.get('id')!r}")
            return None
        node_ids: List[int] = [n for n in nodes if _valid_ref(n)]
        if "id" not in element or not node_ids:
            return None
        return OSMWay(
            id=element["id"],
            node_ids=node_ids,
            tags=tags
        )


def _valid_ref(value: Any) -> bool:
    """Node ids are ints or strings; bools would collide with ids 0 and 1"""
    return isinstance(value, (int, str)) and not isinstance(value, bool)
