"""
Two-tier raw payload cache

In-memory dict in front of a persistent store, both keyed by region.
Entries hold the raw payload, not the classified dataset: every hit is
reclassified. Entries are only ever overwritten, never expired.
"""

import asyncio
from typing import Any, Dict, Optional

from loguru import logger

from .exceptions import StorageError
from .storage import PersistentStore, cache_key


class CacheManager:
    """
    Memory + persistent cache for raw region payloads

    Persistent-tier failures never raise: reads come back as None, writes
    as False, and the reason is kept in last_error for the caller to show.
    """

    def __init__(self, store: PersistentStore, key_prefix: str = "railway_data_"):
        self.store = store
        self.key_prefix = key_prefix
        self._memory: Dict[str, Dict[str, Any]] = {}
        self.last_error: Optional[str] = None

    def key(self, region: str) -> str:
        return cache_key(region, self.key_prefix)

    def peek(self, region: str) -> Optional[Dict[str, Any]]:
        """In-memory tier only"""
        return self._memory.get(region)

    def remember(self, region: str, payload: Dict[str, Any]) -> None:
        """Write the in-memory tier only"""
        self._memory[region] = payload

    def _load_from_store(self, region: str) -> Optional[Dict[str, Any]]:
        """Raw persistent read; touches no manager state so it can run on a worker thread"""
        return self.store.open().get(self.key(region))

    def _read_failed(self, region: str, error: StorageError) -> None:
        self.last_error = f"Cache check failed: {error}"
        logger.warning(f"Failed to read cache for {region}: {error}")

    def _read_persistent(self, region: str) -> Optional[Dict[str, Any]]:
        try:
            return self._load_from_store(region)
        except StorageError as e:
            self._read_failed(region, e)
            return None

    def get(self, region: str) -> Optional[Dict[str, Any]]:
        """Memory first, then the persistent store (copied into memory on hit)"""
        payload = self._memory.get(region)
        if payload is not None:
            logger.debug(f"Memory cache hit for {region}")
            return payload

        payload = self._read_persistent(region)
        if payload is not None:
            logger.info(f"Loaded cached data for {region}")
            self._memory[region] = payload
        return payload

    def _write_to_store(self, region: str, payload: Dict[str, Any]) -> None:
        self.store.open().put(self.key(region), payload)

    def _write_done(self, region: str, payload: Dict[str, Any], error: Optional[StorageError]) -> bool:
        if error is not None:
            self.last_error = f"Could not save to cache: {error}"
            logger.warning(f"Failed to save cache for {region}: {error}")
            return False
        self._memory[region] = payload
        logger.info(f"Saved data for {region} to cache")
        return True

    def set(self, region: str, payload: Dict[str, Any]) -> bool:
        """Persist a payload; memory is updated only when the write succeeds"""
        self.last_error = None
        try:
            self._write_to_store(region, payload)
        except StorageError as e:
            return self._write_done(region, payload, e)
        return self._write_done(region, payload, None)

    def _verify_done(self, region: str, found: bool) -> bool:
        if not found:
            logger.warning(f"Cache write for {region} succeeded but read-back found nothing")
        return found

    def verify(self, region: str) -> bool:
        """Read-after-write check against the persistent tier, bypassing memory"""
        return self._verify_done(region, self._read_persistent(region) is not None)

    async def aget(self, region: str) -> Optional[Dict[str, Any]]:
        """Like get, with the store read on a worker thread and memory filled on the loop"""
        payload = self._memory.get(region)
        if payload is not None:
            logger.debug(f"Memory cache hit for {region}")
            return payload

        try:
            payload = await asyncio.to_thread(self._load_from_store, region)
        except StorageError as e:
            self._read_failed(region, e)
            return None
        if payload is not None:
            logger.info(f"Loaded cached data for {region}")
            self._memory[region] = payload
        return payload

    async def aset(self, region: str, payload: Dict[str, Any]) -> bool:
        self.last_error = None
        try:
            await asyncio.to_thread(self._write_to_store, region, payload)
        except StorageError as e:
            return self._write_done(region, payload, e)
        return self._write_done(region, payload, None)

    async def averify(self, region: str) -> bool:
        try:
            payload = await asyncio.to_thread(self._load_from_store, region)
        except StorageError as e:
            self._read_failed(region, e)
            payload = None
        return self._verify_done(region, payload is not None)
