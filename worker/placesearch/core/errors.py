"""Exception types raised by the ingestion pipeline and the query layer."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from placesearch.models import IngestionOutcome


class PlaceSearchError(RuntimeError):
    """Base class for every error raised by this package."""


class MalformedInputError(PlaceSearchError, ValueError):
    """Raised when the source file has broken quoting or a record carries an unparsable coordinate."""


class StoreUnavailableError(PlaceSearchError):
    """Raised when Elasticsearch cannot be reached or rejects a request."""


class MalformedResponseError(PlaceSearchError):
    """Raised when a search response lacks the expected hits/total structure."""


class InvalidPageError(PlaceSearchError, ValueError):
    """Raised for a page parameter that is not a positive integer."""


class PageOutOfRangeError(PlaceSearchError):
    """Raised when the requested page lies past the last page of results."""


class InvalidCoordinateError(PlaceSearchError, ValueError):
    """Raised when a lat/lon request parameter is not a float."""


class BulkIndexerError(PlaceSearchError):
    """Raised when a bulk run hits a pool-level failure or is cancelled."""

    def __init__(self, message: str, outcome: Optional["IngestionOutcome"] = None) -> None:
        super().__init__(message)
        self.outcome = outcome
