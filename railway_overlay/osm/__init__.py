"""
OpenStreetMap railway ingestion module

Modular components for turning raw survey data into classified features:
- Models: Raw data structures (OSMNode, OSMWay)
- Tags: Typed tag access and per-format flag spellings
- Resolver: Way geometry from node references
- Parser: Overpass element parsing
- Classifier: (category, context) bucket assignment
- Stations: Station point extraction
- Ingestion: Orchestrates all of the above for both input formats
"""

from .models import OSMNode, OSMWay
from .classifier import RailwayClassifier, classify
from .stations import StationExtractor, extract_station
from .resolver import resolve_way
from .ingestion import IngestionPipeline, detect_format

__all__ = [
    "OSMNode",
    "OSMWay",
    "RailwayClassifier",
    "classify",
    "StationExtractor",
    "extract_station",
    "resolve_way",
    "IngestionPipeline",
    "detect_format",
]
