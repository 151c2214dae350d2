"""CLI job to load a tab-separated places file into Elasticsearch."""

import argparse
import logging
import time
from typing import Optional

from placesearch.core.config import get_settings
from placesearch.core.errors import BulkIndexerError, MalformedInputError, StoreUnavailableError
from placesearch.core.store import ensure_index, init_client
from placesearch.etl.bulk_indexer import BulkIndexer
from placesearch.etl.transform import load_places, to_bulk_item
from placesearch.models import IngestionOutcome

logger = logging.getLogger(__name__)


def _close_quietly(indexer: BulkIndexer) -> None:
    try:
        indexer.close()
    except BulkIndexerError as exc:
        if exc.outcome is not None:
            logger.warning(
                "Bulk indexer closed after failure: succeeded=%d failed=%d",
                exc.outcome.succeeded,
                exc.outcome.failed,
            )


def run_load_job(
    *,
    file_path: str,
    index: str,
    num_workers: Optional[int],
    flush_bytes: int,
    flush_interval: float,
) -> IngestionOutcome:
    if not file_path:
        raise ValueError("A places file path is required")

    client = init_client()
    ensure_index(client, index)

    places = load_places(file_path)
    if not places:
        logger.warning("No places found in %s; nothing to index", file_path)
        return IngestionOutcome()

    indexer = BulkIndexer(
        client,
        index,
        num_workers=num_workers,
        flush_bytes=flush_bytes,
        flush_interval=flush_interval,
    )

    started = time.monotonic()
    try:
        for place in places:
            indexer.add(to_bulk_item(place))
    except KeyboardInterrupt:
        logger.warning("Interrupted after queueing documents; cancelling pending batches")
        indexer.cancel()
    except Exception:
        logger.exception("Queueing documents failed; cancelling pending batches")
        indexer.cancel()
        _close_quietly(indexer)
        raise

    outcome = indexer.close()
    elapsed = time.monotonic() - started
    logger.info(
        "Indexed %d documents with %d errors in %.2fs",
        outcome.succeeded,
        outcome.failed,
        elapsed,
    )
    return outcome


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Load a tab-separated places file into Elasticsearch")
    parser.add_argument("-f", "--file", dest="file_path", required=True, help="Path to the places TSV file")
    parser.add_argument("--index", dest="index", default=settings.index_name, help="Index name")
    parser.add_argument(
        "--workers",
        dest="num_workers",
        type=int,
        default=settings.num_workers,
        help="Number of indexer workers",
    )
    parser.add_argument(
        "--flush",
        dest="flush_bytes",
        type=int,
        default=settings.flush_bytes,
        help="Flush threshold in bytes",
    )
    parser.add_argument(
        "--flush-interval",
        dest="flush_interval",
        type=float,
        default=settings.flush_interval,
        help="Periodic flush interval in seconds",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    try:
        run_load_job(
            file_path=args.file_path,
            index=args.index,
            num_workers=args.num_workers,
            flush_bytes=args.flush_bytes,
            flush_interval=args.flush_interval,
        )
    except (MalformedInputError, StoreUnavailableError, BulkIndexerError, OSError) as exc:
        logger.error("Loading places failed: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
