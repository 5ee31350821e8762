"""
Railway taxonomy

Fixed rail categories, physical contexts and the default line style
for every (category, context) bucket
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple


class RailCategory(Enum):
    """Rail categories used to partition line features"""
    RAIL = "rail"
    RAIL_YARD = "rail_yard"
    SUBWAY = "subway"
    LIGHT_RAIL = "light_rail"
    TRAM = "tram"
    NARROW_GAUGE = "narrow_gauge"
    CONSTRUCTION = "construction"
    PROPOSED = "proposed"
    ABANDONED = "abandoned"
    PLATFORM = "platform"


class Context(Enum):
    """Physical placement of a rail segment"""
    SURFACE = "surface"
    TUNNEL = "tunnel"
    BRIDGE = "bridge"


class BucketKey(NamedTuple):
    """(category, context) pair a line feature is filed under"""
    category: RailCategory
    context: Context

    @property
    def layer_id(self) -> str:
        return f"{self.category.value}_{self.context.value}"

    @classmethod
    def parse(cls, layer_id: str) -> "BucketKey":
        """Parse a layer id such as 'light_rail_tunnel' back into a key"""
        category, _, context = layer_id.rpartition("_")
        return cls(RailCategory(category), Context(context))


# Every valid bucket. rail_yard is included: the classifier remaps
# rail + service=yard/siding into it.
ALL_BUCKET_KEYS: Tuple[BucketKey, ...] = tuple(
    BucketKey(category, context)
    for category in RailCategory
    for context in Context
)

ABANDONED_VARIANTS = frozenset({"abandoned", "disused", "razed", "dismantled"})
YARD_SERVICES = frozenset({"yard", "siding"})
STATION_SUBTYPES = frozenset({"station", "halt", "stop", "subway_entrance", "tram_stop"})

# Tags tried in order when resolving a station's line identifier
LINE_TAG_FALLBACK = ("line", "lines", "subway:line", "train:line", "tram:line", "ref")


@dataclass(frozen=True)
class LineStyle:
    """Default presentation of one bucket"""
    color: str
    width: float
    z_offset: int = 0
    dasharray: Optional[Tuple[float, ...]] = None
    opacity: float = 1.0

    def to_paint(self) -> Dict[str, object]:
        """Map-style paint properties for a line layer"""
        paint: Dict[str, object] = {
            "line-color": self.color,
            "line-width": self.width,
            "line-opacity": self.opacity,
        }
        if self.dasharray:
            paint["line-dasharray"] = list(self.dasharray)
        return paint


def _styles(
    surface: LineStyle,
    tunnel: LineStyle,
    bridge: LineStyle
) -> Dict[Context, LineStyle]:
    return {Context.SURFACE: surface, Context.TUNNEL: tunnel, Context.BRIDGE: bridge}


_STYLE_TABLE: Dict[RailCategory, Dict[Context, LineStyle]] = {
    RailCategory.RAIL: _styles(
        LineStyle("#5e5e5e", 3),
        LineStyle("#7e7e7e", 2, -1, (4, 2)),
        LineStyle("#5e5e5e", 3, 1),
    ),
    RailCategory.RAIL_YARD: _styles(
        LineStyle("#919191", 2),
        LineStyle("#919191", 1.5, -1, (4, 2)),
        LineStyle("#919191", 2, 1),
    ),
    RailCategory.SUBWAY: _styles(
        LineStyle("#0000cc", 3.5),
        LineStyle("#0000cc", 3.5, -1, (3, 2)),
        LineStyle("#0000cc", 3.5, 1),
    ),
    RailCategory.LIGHT_RAIL: _styles(
        LineStyle("#0033ff", 3),
        LineStyle("#0033ff", 3, -1, (3, 2)),
        LineStyle("#0033ff", 3, 1),
    ),
    RailCategory.TRAM: _styles(
        LineStyle("#ff00ff", 2.5),
        LineStyle("#ff00ff", 2, -1, (3, 2)),
        LineStyle("#ff00ff", 2.5, 1),
    ),
    RailCategory.NARROW_GAUGE: _styles(
        LineStyle("#ff00ff", 2),
        LineStyle("#ff00ff", 1.5, -1, (3, 2)),
        LineStyle("#ff00ff", 2, 1),
    ),
    RailCategory.CONSTRUCTION: _styles(
        LineStyle("#f20000", 3, 0, (6, 3)),
        LineStyle("#f20000", 2.5, -1, (4, 2)),
        LineStyle("#f20000", 3, 1, (6, 3)),
    ),
    RailCategory.PROPOSED: _styles(
        LineStyle("#ffb300", 2.5, 0, (8, 4)),
        LineStyle("#ffb300", 2, -1, (4, 2)),
        LineStyle("#ffb300", 2.5, 1, (8, 4)),
    ),
    RailCategory.ABANDONED: _styles(
        LineStyle("#800000", 2, 0, (2, 3)),
        LineStyle("#00abab", 1.5, -1, (2, 3)),
        LineStyle("#00abab", 2, 1, (2, 3)),
    ),
    RailCategory.PLATFORM: _styles(
        LineStyle("#0073ff", 2),
        LineStyle("#0073ff", 2, -1),
        LineStyle("#0073ff", 2, 1),
    ),
}

RAILWAY_STYLES: Dict[BucketKey, LineStyle] = {
    BucketKey(category, context): style
    for category, by_context in _STYLE_TABLE.items()
    for context, style in by_context.items()
}

# Bottom-to-top render order: tunnels under surface under bridges
_CATEGORY_DRAW_ORDER = (
    RailCategory.RAIL,
    RailCategory.RAIL_YARD,
    RailCategory.NARROW_GAUGE,
    RailCategory.SUBWAY,
    RailCategory.LIGHT_RAIL,
    RailCategory.TRAM,
    RailCategory.CONSTRUCTION,
    RailCategory.PROPOSED,
    RailCategory.ABANDONED,
    RailCategory.PLATFORM,
)
_CONTEXT_DRAW_ORDER = (Context.TUNNEL, Context.SURFACE, Context.BRIDGE)

DRAW_ORDER: List[BucketKey] = [
    BucketKey(category, context)
    for category in _CATEGORY_DRAW_ORDER
    for context in _CONTEXT_DRAW_ORDER
]


def get_style(key: BucketKey) -> LineStyle:
    """Default style for a bucket"""
    return RAILWAY_STYLES[key]


def category_from_value(value: str) -> Optional[RailCategory]:
    """Map a normalized railway tag value to a category, None if outside the taxonomy"""
    try:
        return RailCategory(value)
    except ValueError:
        return None
