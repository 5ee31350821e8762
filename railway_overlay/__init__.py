"""
Railway overlay data core

Ingests Overpass or GeoJSON railway exports per region, classifies lines
by (category, context) and extracts stations, behind a two-tier cache.
"""

from .cache import CacheManager
from .catalog import Region, RegionCatalog, build_overpass_query
from .models import ClassifiedDataset, LineFeature, StationFeature
from .osm import IngestionPipeline
from .service import ImportResult, RegionDataService
from .taxonomy import BucketKey, Context, RailCategory

__version__ = "0.1.0"

__all__ = [
    "BucketKey",
    "CacheManager",
    "ClassifiedDataset",
    "Context",
    "ImportResult",
    "IngestionPipeline",
    "LineFeature",
    "RailCategory",
    "Region",
    "RegionCatalog",
    "RegionDataService",
    "StationFeature",
    "build_overpass_query",
]
