"""
Railway classifier

Assigns a tagged line feature to exactly one (category, context) bucket.
Shared by the Overpass and GeoJSON ingestion paths; the only format
difference is the TagFlags passed in.
"""

from typing import Any, Dict, Mapping, Optional, Union

from loguru import logger

from ..taxonomy import (
    ABANDONED_VARIANTS,
    YARD_SERVICES,
    BucketKey,
    Context,
    RailCategory,
    category_from_value,
)
from .tags import TagBag, TagFlags


def raw_category(tags: TagBag) -> Optional[str]:
    """railway tag, or 'platform' for public_transport=platform, else None"""
    railway = tags.get_str("railway")
    if railway:
        return railway
    if tags.get_str("public_transport") == "platform":
        return RailCategory.PLATFORM.value
    return None


def resolve_context(tags: TagBag, flags: TagFlags) -> Context:
    """Tunnel wins over bridge; a negative layer means tunnel, a positive one bridge"""
    layer = tags.get_int("layer")
    if tags.is_flag("tunnel", flags.tunnel) or (layer is not None and layer < 0):
        return Context.TUNNEL
    if tags.is_flag("bridge", flags.bridge) or (layer is not None and layer > 0):
        return Context.BRIDGE
    return Context.SURFACE


def classify(
    tags: Union[TagBag, Mapping[str, Any]],
    flags: TagFlags,
    category_hint: Optional[str] = None
) -> Optional[BucketKey]:
    """
    Classify a line feature into a bucket key

    Args:
        tags: Feature tags
        flags: Tunnel/bridge flag spellings of the input format
        category_hint: Raw category to use instead of reading the railway tag

    Returns:
        BucketKey, or None when the feature is not a railway feature or its
        category is outside the taxonomy
    """
    if not isinstance(tags, TagBag):
        tags = TagBag(tags)

    value = category_hint or raw_category(tags)
    if not value:
        return None

    if value in ABANDONED_VARIANTS:
        value = RailCategory.ABANDONED.value

    context = resolve_context(tags, flags)

    if value == RailCategory.RAIL.value and tags.get_str("service") in YARD_SERVICES:
        value = RailCategory.RAIL_YARD.value

    category = category_from_value(value)
    if category is None:
        return None
    return BucketKey(category, context)


class RailwayClassifier:
    """Classifies features and keeps per-run drop counters"""

    def __init__(self, flags: TagFlags):
        self.flags = flags
        self.dropped: Dict[str, int] = {"not_railway": 0, "unknown_category": 0}

    def classify(
        self,
        tags: Union[TagBag, Mapping[str, Any]],
        category_hint: Optional[str] = None
    ) -> Optional[BucketKey]:
        if not isinstance(tags, TagBag):
            tags = TagBag(tags)
        key = classify(tags, self.flags, category_hint)
        if key is None:
            value = category_hint or raw_category(tags)
            if value:
                self.dropped["unknown_category"] += 1
                logger.debug(f"Dropping railway={value}: not a taxonomy category")
            else:
                self.dropped["not_railway"] += 1
        return key
