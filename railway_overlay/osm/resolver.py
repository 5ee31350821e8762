"""
Way geometry resolution

Dereferences a way's node id list against the node index
"""

from typing import Any, Iterable, List, Mapping, Optional, Tuple


def resolve_way(
    nodes_by_id: Mapping[int, Any],
    node_ids: Iterable[int]
) -> Optional[List[Tuple[float, float]]]:
    """
    Resolve a way into an ordered (lon, lat) coordinate list

    Node ids missing from the index are skipped. The way keeps its
    original node order.

    Args:
        nodes_by_id: Node id -> object with lat/lon attributes
        node_ids: The way's ordered node references

    Returns:
        Coordinates, or None when fewer than 2 nodes resolve
    """
    coords = []
    for node_id in node_ids:
        node = nodes_by_id.get(node_id)
        if node is not None:
            coords.append((node.lon, node.lat))

    if len(coords) < 2:
        return None
    return coords
