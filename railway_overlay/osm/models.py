"""
OSM data models

Data classes for raw Overpass nodes and ways
"""

from typing import List, Dict, Optional, Tuple
from dataclasses import dataclass, field

from .resolver import resolve_way


@dataclass
class OSMNode:
    """Represents an OSM node (point)"""
    id: int
    lat: float
    lon: float
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class OSMWay:
    """Represents an OSM way as an ordered list of node references"""
    id: int
    node_ids: List[int]
    tags: Dict[str, str] = field(default_factory=dict)

    def get_coordinates(self, nodes: Dict[int, OSMNode]) -> Optional[List[Tuple[float, float]]]:
        """Get (lon, lat) coordinates, None if fewer than 2 nodes resolve"""
        return resolve_way(nodes, self.node_ids)
