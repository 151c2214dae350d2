"""Page bounds for the places listing."""

import logging
import math
from typing import List, Optional, Protocol, Tuple

from placesearch.core.errors import InvalidPageError, PageOutOfRangeError
from placesearch.models import PagedResult, Place
from placesearch.search.queries import MAX_RESULT_WINDOW

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class PlaceSource(Protocol):
    def get_places(self, limit: int, offset: int) -> Tuple[List[Place], int]:
        ...


def parse_page(raw: Optional[str]) -> int:
    """Turn the `page` query parameter into a page number, defaulting to 1."""
    if raw is None or raw == "":
        return 1
    try:
        page = int(raw)
    except ValueError:
        raise InvalidPageError(f"Invalid 'page' value: {raw}") from None
    if page < 1:
        raise InvalidPageError(f"Invalid 'page' value: {raw}")
    return page


def page_offset(page: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return (page - 1) * page_size


def last_page(total: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return math.ceil(total / page_size)


def build_paged_result(places: List[Place], total: int, page: int, page_size: int = DEFAULT_PAGE_SIZE) -> PagedResult:
    last = last_page(total, page_size)
    if page > last:
        raise PageOutOfRangeError(f"Invalid 'page' value: {page} (last page is {last})")
    return PagedResult(
        places=places,
        total=total,
        current_page=page,
        prev_page=page - 1,
        next_page=page + 1,
        last_page=last,
    )


def fetch_page(
    store: PlaceSource,
    raw_page: Optional[str],
    page_size: int = DEFAULT_PAGE_SIZE,
    max_window: int = MAX_RESULT_WINDOW,
) -> PagedResult:
    """Validate the page, query the store, then check the page against the reported total.

    The range check needs the total, so an out-of-range page still costs one
    search request. Near ``max_window`` the total is fetched first with a
    hits-free query; the index refuses from + size past that window.
    """
    page = parse_page(raw_page)
    offset = page_offset(page, page_size)
    limit = min(page_size, max_window - offset)
    if limit < page_size:
        _, total = store.get_places(0, 0)
        last = last_page(total, page_size)
        if page > last:
            raise PageOutOfRangeError(f"Invalid 'page' value: {page} (last page is {last})")
        if limit <= 0:
            raise PageOutOfRangeError(
                f"Invalid 'page' value: {page} (only the first {max_window} places can be listed)"
            )
    places, total = store.get_places(limit, offset)
    logger.debug("Fetched page %d: %d of %d places", page, len(places), total)
    return build_paged_result(places, total, page, page_size)
