"""HTTP entrypoint serving place listings and nearest-place recommendations."""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify, render_template, request

from placesearch.core.config import get_settings
from placesearch.core.errors import (
    InvalidCoordinateError,
    InvalidPageError,
    MalformedResponseError,
    PageOutOfRangeError,
    StoreUnavailableError,
)
from placesearch.core.store import get_store
from placesearch.search.pagination import fetch_page
from placesearch.search.queries import parse_coordinate

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)

_CLIENT_ERRORS = (InvalidPageError, PageOutOfRangeError, InvalidCoordinateError)
_STORE_ERRORS = (StoreUnavailableError, MalformedResponseError)

# ---------- Routes ----------


@app.get("/")
def index_page() -> Any:
    try:
        result = fetch_page(get_store(), request.args.get("page"), get_settings().page_size)
    except _CLIENT_ERRORS as exc:
        return str(exc), 400
    except _STORE_ERRORS as exc:
        logger.error("Listing page failed: %s", exc)
        return "search backend unavailable", 502
    return render_template("index.html", result=result), 200


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return jsonify({"status": "ok", "index": settings.index_name}), 200


@app.get("/api/places/")
def list_places() -> Any:
    try:
        result = fetch_page(get_store(), request.args.get("page"), get_settings().page_size)
    except _CLIENT_ERRORS as exc:
        return jsonify({"error": str(exc)}), 400
    except _STORE_ERRORS as exc:
        logger.error("Places listing failed: %s", exc)
        return jsonify({"error": str(exc)}), 502
    return jsonify(result.to_dict()), 200


@app.get("/api/recommend/")
def recommend_places() -> Any:
    """Return the closest places to the `lat`/`lon` query parameters."""
    try:
        lat = parse_coordinate(request.args.get("lat"), "latitude")
        lon = parse_coordinate(request.args.get("lon"), "longitude")
        places = get_store().nearest_places(lat, lon, get_settings().recommend_size)
    except _CLIENT_ERRORS as exc:
        return jsonify({"error": str(exc)}), 400
    except _STORE_ERRORS as exc:
        logger.error("Recommendation failed for lat=%s lon=%s: %s", lat, lon, exc)
        return jsonify({"error": str(exc)}), 502

    return jsonify({"name": "Recommendation", "places": [place.to_document() for place in places]}), 200


def main() -> None:
    port = get_settings().server_port
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
