"""Elasticsearch helpers for the worker."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from elastic_transport import TransportError
from elasticsearch import ApiError, BadRequestError, Elasticsearch

from placesearch.core.config import get_settings
from placesearch.core.errors import StoreUnavailableError
from placesearch.models import Place
from placesearch.search.queries import (
    MAX_RESULT_WINDOW,
    build_geo_distance_query,
    build_match_all_query,
    map_search_response,
)

logger = logging.getLogger(__name__)

_client: Optional[Elasticsearch] = None

PLACES_MAPPINGS: Dict[str, Any] = {
    "properties": {
        "id": {"type": "long"},
        "name": {"type": "text"},
        "address": {"type": "text"},
        "phone": {"type": "text"},
        "location": {"type": "geo_point"},
    }
}


def init_client() -> Elasticsearch:
    """Initialise and return the shared Elasticsearch client."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = Elasticsearch(
            settings.elasticsearch_url,
            node_class=settings.http_node,
            request_timeout=settings.request_timeout,
        )
        logger.info("Elasticsearch client initialised for %s", settings.elasticsearch_url)
    return _client


def ensure_index(client: Elasticsearch, index: str) -> bool:
    """Create `index` with the places mapping unless it already exists.

    Returns True when the index was created by this call. An existing index is
    left untouched, whatever its mapping.
    """
    try:
        if client.indices.exists(index=index):
            logger.info("Index %s already exists", index)
            return False
        client.indices.create(
            index=index,
            settings={"index": {"max_result_window": MAX_RESULT_WINDOW}},
            mappings=PLACES_MAPPINGS,
        )
    except BadRequestError as exc:
        if exc.error == "resource_already_exists_exception":
            logger.info("Index %s was created concurrently", index)
            return False
        raise StoreUnavailableError(f"failed to create index {index}: {exc}") from exc
    except (ApiError, TransportError) as exc:
        raise StoreUnavailableError(f"failed to prepare index {index}: {exc}") from exc

    logger.info("Created index %s", index)
    return True


class PlaceStore:
    """Read access to the places index."""

    def __init__(self, client: Elasticsearch, index: str) -> None:
        self._client = client
        self._index = index

    @property
    def index(self) -> str:
        return self._index

    def search(self, query: Dict[str, Any]) -> Tuple[List[Place], int]:
        params = dict(query)
        if "from" in params:
            params["from_"] = params.pop("from")
        try:
            response = self._client.search(index=self._index, track_total_hits=True, **params)
        except ApiError as exc:
            raise StoreUnavailableError(f"error getting places: {exc.meta.status}") from exc
        except TransportError as exc:
            raise StoreUnavailableError(f"error getting places: {exc}") from exc
        return map_search_response(getattr(response, "body", response))

    def get_places(self, limit: int, offset: int) -> Tuple[List[Place], int]:
        return self.search(build_match_all_query(limit, offset))

    def nearest_places(self, lat: float, lon: float, size: int) -> List[Place]:
        places, _ = self.search(build_geo_distance_query(lat, lon, size=size))
        return places


def get_store() -> PlaceStore:
    return PlaceStore(init_client(), get_settings().index_name)
