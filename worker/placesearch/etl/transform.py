"""Utilities for turning tab-separated place records into Place entities."""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from placesearch.core.errors import MalformedInputError
from placesearch.etl.bulk_indexer import BulkItem
from placesearch.models import GeoPoint, Place

logger = logging.getLogger(__name__)

# Column positions in the source file. Column 0 carries the source's own id,
# which is ignored in favour of the row position.
PLACE_COLUMNS: Dict[str, int] = {
    "name": 1,
    "address": 2,
    "phone": 3,
    "longitude": 4,
    "latitude": 5,
}


def _column(row: Sequence[str], name: str) -> Optional[str]:
    position = PLACE_COLUMNS[name]
    if position < len(row):
        return row[position]
    return None


def _coordinate(row: Sequence[str], name: str, row_number: int) -> float:
    raw = _column(row, name)
    if raw is None:
        return 0.0
    try:
        return float(raw.strip())
    except ValueError:
        raise MalformedInputError(f"row {row_number}: invalid {name} value {raw!r}") from None


def to_place(row: Sequence[str], place_id: int) -> Place:
    lon = _coordinate(row, "longitude", place_id)
    lat = _coordinate(row, "latitude", place_id)
    return Place(
        id=place_id,
        name=_column(row, "name") or "",
        address=_column(row, "address") or "",
        phone=_column(row, "phone") or "",
        location=GeoPoint(lat=lat, lon=lon),
    )


def parse_place_rows(rows: Iterable[Sequence[str]]) -> List[Place]:
    """Convert raw rows into places, skipping the header row.

    IDs follow row order starting at 1. The first bad coordinate aborts the
    whole batch.
    """
    places: List[Place] = []
    for row_number, row in enumerate(rows):
        if row_number == 0:
            continue
        places.append(to_place(row, row_number))
    return places


def read_place_rows(path: Union[str, Path]) -> List[List[str]]:
    """Read non-blank rows; undecodable bytes become U+FFFD, broken quoting is fatal."""
    with open(path, newline="", encoding="utf-8", errors="replace") as fh:
        reader = csv.reader(fh, delimiter="\t", strict=True)
        try:
            return [row for row in reader if row]
        except csv.Error as exc:
            raise MalformedInputError(f"{path}: line {reader.line_num}: {exc}") from exc


def load_places(path: Union[str, Path]) -> List[Place]:
    places = parse_place_rows(read_place_rows(path))
    logger.info("Parsed %d places from %s", len(places), path)
    return places


def to_bulk_item(place: Place) -> BulkItem:
    body = json.dumps(place.to_document(), ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return BulkItem(document_id=str(place.id), body=body)
