"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_ELASTICSEARCH_URL = "http://elasticsearch:9200"


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class Settings:
    elasticsearch_url: str = DEFAULT_ELASTICSEARCH_URL
    index_name: str = "places"
    num_workers: int = field(default_factory=_default_workers)
    flush_bytes: int = 5_000_000
    flush_interval: float = 30.0
    page_size: int = 10
    recommend_size: int = 3
    request_timeout: float = 30.0
    http_node: str = "requests"
    server_port: int = 8888


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s must be positive, got %d; using %d", name, value, default)
        return default
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s must be positive, got %s; using %s", name, value, default)
        return default
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    elasticsearch_url = os.getenv("ELASTICSEARCH_URL", "")
    if not elasticsearch_url:
        logger.warning("ELASTICSEARCH_URL is not set; falling back to %s", DEFAULT_ELASTICSEARCH_URL)
        elasticsearch_url = DEFAULT_ELASTICSEARCH_URL

    return Settings(
        elasticsearch_url=elasticsearch_url,
        index_name=os.getenv("PLACES_INDEX") or "places",
        num_workers=_int_env("INDEXER_WORKERS", _default_workers()),
        flush_bytes=_int_env("INDEXER_FLUSH_BYTES", 5_000_000),
        flush_interval=_float_env("INDEXER_FLUSH_INTERVAL", 30.0),
        page_size=_int_env("PAGE_SIZE", 10),
        recommend_size=_int_env("RECOMMEND_SIZE", 3),
        request_timeout=_float_env("ELASTICSEARCH_TIMEOUT", 30.0),
        http_node=os.getenv("ELASTICSEARCH_HTTP_NODE") or "requests",
        server_port=_int_env("PORT", 8888),
    )
