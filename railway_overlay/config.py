"""
Configuration settings for the railway overlay data core
"""

from dataclasses import dataclass, field
from pathlib import Path
import os

from loguru import logger

try:
    from dotenv import load_dotenv
    HAS_DOTENV = True
except ImportError:
    HAS_DOTENV = False


CACHE_BACKENDS = ("sqlite", "json", "memory")


@dataclass
class IngestionConfig:
    """Raw-element ingestion settings"""
    # Elements processed between two cooperative yields
    chunk_size: int = 5000


@dataclass
class CacheConfig:
    """Persistent cache settings"""
    # sqlite: single key/value table, json: one file per region, memory: no persistence
    backend: str = "sqlite"
    path: str = os.path.join("cache", "railway_overlay.db")
    table: str = "cities"
    key_prefix: str = "railway_data_"


@dataclass
class ServiceConfig:
    """Region data service settings"""
    # True: one in-flight load per region. False: one in-flight load overall.
    per_region_guard: bool = True


@dataclass
class OverlayConfig:
    """Top-level configuration"""
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)


# Global config instance
config = OverlayConfig()


def get_config() -> OverlayConfig:
    """Get global configuration"""
    return config


def load_env_overrides(cfg: OverlayConfig) -> OverlayConfig:
    """
    Apply RAILWAY_OVERLAY_* environment variables to a config

    A .env file in the project root or the current directory is loaded first
    if python-dotenv is installed. Existing environment variables win.
    """
    if HAS_DOTENV:
        env_paths = [
            Path(__file__).parent.parent / ".env",  # Project root
            Path.cwd() / ".env",
        ]
        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(env_path, override=False)
                logger.debug(f"Loaded .env file from {env_path}")
                break

    backend = os.getenv("RAILWAY_OVERLAY_CACHE_BACKEND")
    if backend:
        cfg.cache.backend = backend
    path = os.getenv("RAILWAY_OVERLAY_CACHE_PATH")
    if path:
        cfg.cache.path = path
    chunk_size = os.getenv("RAILWAY_OVERLAY_CHUNK_SIZE")
    if chunk_size:
        try:
            cfg.ingestion.chunk_size = int(chunk_size)
        except ValueError:
            logger.warning(f"Ignoring non-numeric RAILWAY_OVERLAY_CHUNK_SIZE: {chunk_size!r}")
    return cfg


def validate_config(config: OverlayConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors = []

    if config.ingestion.chunk_size is None or config.ingestion.chunk_size <= 0:
        errors.append(f"ingestion.chunk_size must be positive, got {config.ingestion.chunk_size}")

    if config.cache.backend not in CACHE_BACKENDS:
        errors.append(
            f"cache.backend must be one of {', '.join(CACHE_BACKENDS)}, got {config.cache.backend!r}"
        )
    elif config.cache.backend != "memory" and not config.cache.path:
        errors.append(f"cache.path is required for the {config.cache.backend} backend")

    if not config.cache.key_prefix:
        errors.append("cache.key_prefix is required but not set")

    if config.cache.backend == "sqlite" and not config.cache.table.isidentifier():
        errors.append(f"cache.table must be a plain identifier, got {config.cache.table!r}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
