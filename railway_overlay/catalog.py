"""
Region catalog and raw-data fetch hook

The catalog only supplies human-readable names for messages. The fetch
hook is supplied by the host; no network download ships with the core.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger


# region code -> raw payload or None
FetchHook = Callable[[str], Optional[Dict[str, Any]]]


@dataclass(frozen=True)
class Region:
    code: str
    name: str


class RegionCatalog:
    """Lookup of region codes to display names"""

    def __init__(self, regions: Iterable[Region] = ()):
        self._regions: Dict[str, Region] = {r.code: r for r in regions}

    @classmethod
    def from_file(cls, path: str) -> "RegionCatalog":
        """Load a JSON list of {"code": ..., "name": ...} objects"""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        regions = []
        for entry in data:
            try:
                regions.append(Region(code=str(entry["code"]), name=str(entry.get("name") or entry["code"])))
            except (KeyError, TypeError):
                logger.warning(f"Skipping invalid catalog entry: {entry!r}")
        return cls(regions)

    def list_regions(self) -> List[Region]:
        return list(self._regions.values())

    def get(self, code: str) -> Optional[Region]:
        return self._regions.get(code)

    def display_name(self, code: str) -> str:
        region = self._regions.get(code)
        return region.name if region else code


OVERPASS_QUERY_TEMPLATE = """[out:json][timeout:{timeout}][bbox:{bbox}];
(
  way[railway];
  way[public_transport=platform][train=yes];
  way[public_transport=platform][subway=yes];
  way[public_transport=platform][light_rail=yes];
  way[public_transport=platform][tram=yes];
  node[railway=station];
);
out body;
>;
out skel qt;"""


def build_overpass_query(
    bbox: Optional[Tuple[float, float, float, float]] = None,
    timeout: int = 25
) -> str:
    """
    Overpass QL that produces an importable railway export

    Args:
        bbox: (south, west, north, east); None keeps the {{bbox}}
            placeholder for Overpass Turbo
        timeout: Server-side query timeout in seconds
    """
    if bbox is None:
        bbox_str = "{{bbox}}"
    else:
        south, west, north, east = bbox
        if not (-90 <= south <= north <= 90 and -180 <= west <= 180 and -180 <= east <= 180):
            raise ValueError(f"Invalid bbox (south, west, north, east): {bbox}")
        bbox_str = f"{south},{west},{north},{east}"
    return OVERPASS_QUERY_TEMPLATE.format(timeout=timeout, bbox=bbox_str)
