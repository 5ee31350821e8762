"""
Tag access helpers

OSM and GeoJSON tags are free-form maps. TagBag gives the classifier
typed lookups, and TagFlags captures how each input format spells
tunnel/bridge flags.
"""

import re
from dataclasses import dataclass
from typing import Any, FrozenSet, Mapping, Optional


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class TagFlags:
    """Values accepted as a true tunnel/bridge flag for one input format"""
    tunnel: FrozenSet[Any]
    bridge: FrozenSet[Any]


# Overpass exports carry string tags only; viaduct counts as a bridge
OVERPASS_FLAGS = TagFlags(
    tunnel=frozenset({"yes"}),
    bridge=frozenset({"yes", "viaduct"}),
)

# Some GeoJSON producers emit booleans for tunnel/bridge
GEOJSON_FLAGS = TagFlags(
    tunnel=frozenset({"yes", True}),
    bridge=frozenset({"yes", True}),
)


class TagBag:
    """Read-only view over a tag mapping"""

    __slots__ = ("_tags",)

    def __init__(self, tags: Optional[Mapping[str, Any]] = None):
        self._tags = tags or {}

    def get_str(self, key: str, default: str = "") -> str:
        """String value, default when absent or empty"""
        value = self._tags.get(key)
        if value is None or value == "":
            return default
        return str(value)

    def get_int(self, key: str) -> Optional[int]:
        """
        Leading integer of a value ("-1", " 2;3" -> 2), None if there is none

        Booleans are not numbers here.
        """
        value = self._tags.get(key)
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value)
        match = _LEADING_INT.match(str(value))
        if match:
            return int(match.group(1))
        return None

    def is_flag(self, key: str, accepted: FrozenSet[Any]) -> bool:
        """True when the value is one of the accepted flag spellings"""
        value = self._tags.get(key)
        if value is None:
            return False
        # 1 == True would otherwise match a boolean flag set
        if isinstance(value, bool):
            return any(a is value for a in accepted)
        if isinstance(value, str):
            return value in accepted
        return False

    def first_of(self, keys, default: str = "") -> str:
        """First present, non-empty value among keys"""
        for key in keys:
            value = self.get_str(key)
            if value:
                return value
        return default
