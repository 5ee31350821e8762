"""
Region Data Service

Entry point for hosts: "give me the classified dataset for region X".
Composes the cache and the ingestion pipeline and owns the single-flight
guard, the current region and the last published dataset per region.

Usage:
    service = RegionDataService.from_config(get_config())
    result = await service.import_raw_payload("nyc", payload)
    dataset = await service.load("nyc")
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from loguru import logger

from .cache import CacheManager
from .catalog import FetchHook, RegionCatalog
from .config import OverlayConfig, validate_config
from .exceptions import PayloadFormatError
from .models import ClassifiedDataset
from .osm.ingestion import IngestionPipeline, detect_format
from .storage import create_store


_GLOBAL = "*"

LOAD_IN_PROGRESS_MESSAGE = "Warning: A load is already in progress; load the region again to see the imported data"


@dataclass
class ImportResult:
    """Outcome of an explicit import"""
    cached: bool
    verified: bool
    dataset: Optional[ClassifiedDataset] = None
    messages: List[str] = field(default_factory=list)


def parse_payload_text(text: str) -> Dict[str, Any]:
    """Decode uploaded or pasted JSON text into a payload object"""
    try:
        payload = json.loads(text)
    except ValueError as e:
        raise PayloadFormatError(f"Failed to parse JSON: {e}") from e
    if not isinstance(payload, dict):
        raise PayloadFormatError("Payload must be a JSON object")
    return payload


def is_importable(payload: Any) -> bool:
    """Overpass export (elements or version) or GeoJSON FeatureCollection"""
    if not isinstance(payload, dict):
        return False
    return (
        "elements" in payload
        or "version" in payload
        or payload.get("type") == "FeatureCollection"
    )


class RegionDataService:
    """Loads classified datasets per region"""

    def __init__(
        self,
        cache: CacheManager,
        pipeline: Optional[IngestionPipeline] = None,
        catalog: Optional[RegionCatalog] = None,
        fetch_hook: Optional[FetchHook] = None,
        per_region_guard: bool = True
    ):
        self.cache = cache
        self.pipeline = pipeline or IngestionPipeline()
        self.catalog = catalog or RegionCatalog()
        self.fetch_hook = fetch_hook
        self.per_region_guard = per_region_guard
        self.current_region: Optional[str] = None
        self.datasets: Dict[str, ClassifiedDataset] = {}
        self._in_flight: Set[str] = set()

    @classmethod
    def from_config(
        cls,
        config: OverlayConfig,
        catalog: Optional[RegionCatalog] = None,
        fetch_hook: Optional[FetchHook] = None
    ) -> "RegionDataService":
        validate_config(config)
        cache = CacheManager(create_store(config.cache), key_prefix=config.cache.key_prefix)
        return cls(
            cache,
            IngestionPipeline(chunk_size=config.ingestion.chunk_size),
            catalog=catalog,
            fetch_hook=fetch_hook,
            per_region_guard=config.service.per_region_guard,
        )

    def _guard_key(self, region: str) -> str:
        return region if self.per_region_guard else _GLOBAL

    def is_loading(self, region: Optional[str] = None) -> bool:
        if region is None:
            return bool(self._in_flight)
        return self._guard_key(region) in self._in_flight

    def get_dataset(self, region: str) -> Optional[ClassifiedDataset]:
        """Last dataset published for a region"""
        return self.datasets.get(region)

    async def load(self, region: str, force_refresh: bool = False) -> Optional[ClassifiedDataset]:
        """
        Classified dataset for a region

        Order: memory cache, persistent cache, fetch hook. With
        force_refresh both cache tiers are skipped and only the fetch hook
        can supply data. A load requested while another one holds the guard
        returns None at once.

        Args:
            region: Region code
            force_refresh: Skip both cache tiers

        Returns:
            ClassifiedDataset, or None when no usable payload was found
        """
        guard = self._guard_key(region)
        if guard in self._in_flight:
            logger.info(f"Load for {region} ignored: another load is in progress")
            return None

        self._in_flight.add(guard)
        self.current_region = region
        try:
            return await self._load(region, force_refresh)
        finally:
            self._in_flight.discard(guard)

    async def _load(self, region: str, force_refresh: bool) -> Optional[ClassifiedDataset]:
        name = self.catalog.display_name(region)

        payload = None
        if not force_refresh:
            payload = await self.cache.aget(region)
        if payload is None:
            payload = await self._fetch(region)

        if payload is None:
            logger.info(f"No data found for {name}. Import a payload first.")
            return None

        dataset = await self.pipeline.process(payload)
        if dataset is None:
            logger.warning(f"Cached payload for {name} has an unsupported format")
            return None

        self.datasets[region] = dataset
        return dataset

    async def _fetch(self, region: str) -> Optional[Dict[str, Any]]:
        if self.fetch_hook is None:
            return None
        payload = await asyncio.to_thread(self.fetch_hook, region)
        if payload is None or detect_format(payload) is None:
            return None
        if not await self.cache.aset(region, payload):
            self.cache.remember(region, payload)
        return payload

    async def import_raw_payload(self, region: str, payload: Any) -> ImportResult:
        """
        Store a caller-supplied payload and load it

        The payload is kept in memory even if persisting fails, so the
        current session keeps working.
        """
        if not is_importable(payload):
            return ImportResult(False, False, messages=["Invalid OSM/GeoJSON data format"])

        result = ImportResult(cached=False, verified=False)
        result.cached = await self.cache.aset(region, payload)
        if result.cached:
            result.verified = await self.cache.averify(region)
            if result.verified:
                result.messages.append("Data cached & verified successfully")
            else:
                result.messages.append("Warning: Cache write succeeded but read failed")
        else:
            result.messages.append(f"Warning: {self.cache.last_error or 'Could not save to cache'}")

        self.cache.remember(region, payload)
        if self.is_loading(region):
            result.messages.append(LOAD_IN_PROGRESS_MESSAGE)
            return result
        result.dataset = await self.load(region, False)
        if result.dataset is not None:
            result.messages.append("Data imported successfully")
        return result
