"""Core data models shared by the ingestion pipeline and the query layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float = 0.0
    lon: float = 0.0


@dataclass(frozen=True, slots=True)
class Place:
    """A single place record; `id` is the 1-based position of its input row."""

    id: int
    name: str = ""
    address: str = ""
    phone: str = ""
    location: GeoPoint = field(default_factory=GeoPoint)

    def to_document(self) -> Dict[str, Any]:
        """Canonical document stored in the search index."""
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "location": {"lat": self.location.lat, "lon": self.location.lon},
        }

    @classmethod
    def from_source(cls, source: Dict[str, Any]) -> "Place":
        """Rebuild a place from a stored `_source`; raises KeyError/TypeError/ValueError on bad shapes."""
        location = source["location"]
        return cls(
            id=int(source["id"]),
            name=_require_str(source, "name"),
            address=_require_str(source, "address"),
            phone=_require_str(source, "phone"),
            location=GeoPoint(lat=float(location["lat"]), lon=float(location["lon"])),
        )


def _require_str(source: Dict[str, Any], key: str) -> str:
    value = source[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


@dataclass(slots=True)
class PagedResult:
    places: List[Place]
    total: int
    current_page: int
    prev_page: int
    next_page: int
    last_page: int
    name: str = "Places"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total": self.total,
            "places": [place.to_document() for place in self.places],
            "current_page": self.current_page,
            "prev_page": self.prev_page,
            "next_page": self.next_page,
            "last_page": self.last_page,
        }


@dataclass(slots=True)
class IngestionOutcome:
    """Summary of one bulk ingestion run, returned when the indexer is drained."""

    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    requests: int = 0
    failures: Dict[str, str] = field(default_factory=dict, repr=False)

    def record_success(self) -> None:
        self.succeeded += 1

    def record_failure(self, document_id: str, reason: str) -> None:
        self.failed += 1
        self.failures[document_id] = reason
