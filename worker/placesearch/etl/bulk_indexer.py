"""Concurrent bulk indexing of documents into Elasticsearch.

Items are buffered and sent as `_bulk` requests by a fixed-size thread pool.
A batch is dispatched when the buffer reaches ``flush_bytes`` or when the
periodic timer fires, whichever comes first. Workers post one outcome per
item to a queue; ``close()`` drains the pool and aggregates that queue into
an :class:`IngestionOutcome`.
"""

from __future__ import annotations

import json
import logging
import os
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from elastic_transport import TransportError
from elasticsearch import ApiError, Elasticsearch

from placesearch.core.errors import BulkIndexerError
from placesearch.models import IngestionOutcome

logger = logging.getLogger(__name__)

DEFAULT_FLUSH_BYTES = 5_000_000
DEFAULT_FLUSH_INTERVAL = 30.0


@dataclass(frozen=True, slots=True)
class BulkItem:
    document_id: str
    body: bytes
    action: str = "index"


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    document_id: str
    ok: bool
    error: Optional[str] = None


_Entry = Tuple[BulkItem, bytes]


class BulkIndexer:
    def __init__(
        self,
        client: Elasticsearch,
        index: str,
        *,
        num_workers: Optional[int] = None,
        flush_bytes: int = DEFAULT_FLUSH_BYTES,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if flush_bytes <= 0:
            raise ValueError("flush_bytes must be positive")
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive")

        self._client = client
        self._index = index
        self._num_workers = num_workers or os.cpu_count() or 1
        self._flush_bytes = flush_bytes
        self._flush_interval = flush_interval
        self._cancel_event = cancel_event or threading.Event()

        self._executor = ThreadPoolExecutor(max_workers=self._num_workers, thread_name_prefix="bulk-indexer")
        self._lock = threading.Lock()
        self._buffer: List[_Entry] = []
        self._buffer_bytes = 0
        self._futures: List[Tuple[Future, List[_Entry]]] = []
        self._outcomes: "queue.Queue[ItemOutcome]" = queue.Queue()
        self._fatal_error: Optional[BaseException] = None
        self._submitted = 0
        self._requests = 0
        self._closed = False

        self._stop_timer = threading.Event()
        self._timer = threading.Thread(target=self._flush_periodically, name="bulk-indexer-timer", daemon=True)
        self._timer.start()
        logger.debug(
            "Bulk indexer started: index=%s workers=%d flush_bytes=%d flush_interval=%.1fs",
            index,
            self._num_workers,
            flush_bytes,
            flush_interval,
        )

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def add(self, item: BulkItem) -> None:
        """Buffer an item for indexing; never waits for the item's outcome."""
        if self.cancelled:
            raise BulkIndexerError("bulk indexing was cancelled")

        meta = json.dumps({item.action: {"_index": self._index, "_id": item.document_id}}).encode("utf-8")
        size = len(meta) + len(item.body) + 2

        with self._lock:
            if self._closed:
                raise BulkIndexerError("cannot add items to a closed bulk indexer")
            self._buffer.append((item, meta))
            self._buffer_bytes += size
            self._submitted += 1
            if self._buffer_bytes >= self._flush_bytes:
                self._dispatch_locked()

    def flush(self) -> None:
        """Hand the current buffer to the pool without waiting for it."""
        with self._lock:
            if not self._closed:
                self._dispatch_locked()

    def cancel(self) -> None:
        """Fail batches that have not been sent yet; acknowledged writes stay."""
        if not self.cancelled:
            logger.warning("Cancelling bulk indexing into %s", self._index)
        self._cancel_event.set()

    def close(self) -> IngestionOutcome:
        """Flush what is left, wait for every batch and return the run's outcome.

        Raises BulkIndexerError, carrying the outcome, when a whole bulk request
        failed, a worker crashed, or the run was cancelled.
        """
        with self._lock:
            if self._closed:
                raise BulkIndexerError("bulk indexer is already closed")
            self._closed = True
            self._stop_timer.set()
            self._dispatch_locked()
            futures = list(self._futures)

        self._timer.join()
        try:
            for future, batch in futures:
                try:
                    future.result()
                except Exception as exc:  # noqa: BLE001
                    # The worker died before reporting its items.
                    logger.exception("Bulk worker crashed while indexing into %s", self._index)
                    self._record_fatal(exc)
                    self._fail_batch(batch, f"bulk worker crashed: {exc}")
        finally:
            self._executor.shutdown(wait=True)

        outcome = self._collect_outcome()
        logger.info(
            "Bulk indexing into %s finished: submitted=%d succeeded=%d failed=%d requests=%d",
            self._index,
            outcome.submitted,
            outcome.succeeded,
            outcome.failed,
            outcome.requests,
        )
        if self._fatal_error is not None:
            raise BulkIndexerError(
                f"bulk indexing failed: {self._fatal_error}", outcome=outcome
            ) from self._fatal_error
        return outcome

    # ---------- Internals ----------

    def _dispatch_locked(self) -> None:
        if not self._buffer:
            return
        batch = self._buffer
        self._buffer = []
        self._buffer_bytes = 0
        self._requests += 1
        self._futures.append((self._executor.submit(self._send, batch), batch))

    def _flush_periodically(self) -> None:
        while not self._stop_timer.wait(self._flush_interval):
            self.flush()

    def _send(self, batch: List[_Entry]) -> None:
        if self.cancelled:
            self._record_fatal(BulkIndexerError("bulk indexing was cancelled"))
            self._fail_batch(batch, "cancelled before the bulk request was sent")
            return

        operations: List[bytes] = []
        for item, meta in batch:
            operations.append(meta)
            operations.append(item.body)

        try:
            response = self._client.bulk(operations=operations, index=self._index)
        except (ApiError, TransportError) as exc:
            self._record_fatal(exc)
            self._fail_batch(batch, str(exc))
            return

        body = getattr(response, "body", response)
        results = body.get("items") if isinstance(body, dict) else None
        if not isinstance(results, list):
            results = []
        # A batch reports all of its items or none of them.
        outcomes = [
            self._item_outcome(item, results[position] if position < len(results) else None)
            for position, (item, _) in enumerate(batch)
        ]
        for outcome in outcomes:
            self._report(outcome)

    def _item_outcome(self, item: BulkItem, result: Optional[Dict[str, Any]]) -> ItemOutcome:
        if not isinstance(result, dict) or not result:
            return ItemOutcome(item.document_id, ok=False, error="no result returned for item")

        info = next(iter(result.values()))
        if not isinstance(info, dict):
            return ItemOutcome(item.document_id, ok=False, error="malformed result returned for item")
        status = info.get("status", 0)
        error = info.get("error")
        if isinstance(status, int) and 200 <= status < 300 and not error:
            return ItemOutcome(item.document_id, ok=True)

        if isinstance(error, dict):
            reason = f"{error.get('type')}: {error.get('reason')}"
        elif error:
            reason = str(error)
        else:
            reason = f"unexpected status {status}"
        return ItemOutcome(item.document_id, ok=False, error=reason)

    def _fail_batch(self, batch: List[_Entry], reason: str) -> None:
        for item, _ in batch:
            self._report(ItemOutcome(item.document_id, ok=False, error=reason))

    def _report(self, outcome: ItemOutcome) -> None:
        if not outcome.ok:
            logger.error("Failed to index document %s: %s", outcome.document_id, outcome.error)
        self._outcomes.put(outcome)

    def _record_fatal(self, exc: BaseException) -> None:
        with self._lock:
            if self._fatal_error is None:
                self._fatal_error = exc

    def _collect_outcome(self) -> IngestionOutcome:
        outcome = IngestionOutcome(submitted=self._submitted, requests=self._requests)
        while True:
            try:
                item = self._outcomes.get_nowait()
            except queue.Empty:
                break
            if item.ok:
                outcome.record_success()
            else:
                outcome.record_failure(item.document_id, item.error or "unknown error")
        return outcome
