"""Query documents for the places index and mapping of search responses."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from placesearch.core.errors import InvalidCoordinateError, MalformedResponseError
from placesearch.models import Place

logger = logging.getLogger(__name__)

RECOMMEND_SIZE = 3
SORT_FIELD = "id"
# Index-level cap on from + size for match-all paging.
MAX_RESULT_WINDOW = 20000


def build_match_all_query(size: int, offset: int) -> Dict[str, Any]:
    return {
        "size": size,
        "from": offset,
        "query": {"match_all": {}},
        "sort": [{SORT_FIELD: "asc"}],
    }


def build_geo_distance_query(lat: float, lon: float, size: int = RECOMMEND_SIZE) -> Dict[str, Any]:
    """Nearest places first, measured as arc distance in kilometres."""
    return {
        "size": size,
        "query": {"match_all": {}},
        "sort": [
            {
                "_geo_distance": {
                    "location": {"lat": lat, "lon": lon},
                    "order": "asc",
                    "unit": "km",
                    "mode": "min",
                    "distance_type": "arc",
                    "ignore_unmapped": True,
                }
            }
        ],
    }


def parse_coordinate(raw: Optional[str], name: str) -> float:
    try:
        return float((raw or "").strip())
    except ValueError:
        raise InvalidCoordinateError(f"Invalid '{name}' value: {raw or ''}") from None


def map_search_response(response: Dict[str, Any]) -> Tuple[List[Place], int]:
    """Extract places and the total hit count from a raw search response."""
    hits = response.get("hits") if isinstance(response, dict) else None
    if not isinstance(hits, dict):
        raise MalformedResponseError("no hits found in response")

    hit_list = hits.get("hits")
    if not isinstance(hit_list, list):
        raise MalformedResponseError("no hits found in response")

    total = hits.get("total")
    if not isinstance(total, dict) or not isinstance(total.get("value"), int):
        raise MalformedResponseError("no total hit count found in response")

    places: List[Place] = []
    for position, hit in enumerate(hit_list):
        source = hit.get("_source") if isinstance(hit, dict) else None
        if not isinstance(source, dict):
            raise MalformedResponseError(f"hit {position} has no _source")
        try:
            places.append(Place.from_source(source))
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"hit {position} has an invalid _source: {exc}") from exc

    logger.debug("Mapped %d hits out of %d total", len(places), total["value"])
    return places, total["value"]
