# src/esrollup/plugins/elasticsearch/bulk_sink.py
"""Batching bulk writer for the target cluster.

Documents are buffered until `bulk_actions` are waiting, then committed
as one bulk request on a small worker pool. Every document is indexed
under its original _id, so re-running a rollup overwrites rather than
duplicates.

Failures never raise out of the sink: rejected items and transport
errors are counted in SinkStats.failed for the operator to see.
"""

from __future__ import annotations

from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from threading import BoundedSemaphore, Lock
from typing import Any

from elasticsearch import ApiError, Elasticsearch, TransportError, helpers

from esrollup.contracts.types import DEFAULT_DOCUMENT_TYPE, SinkStats
from esrollup.core.logging import get_logger

logger = get_logger(__name__)


class ElasticsearchBulkSink:
    """Thread-safe BulkSink backed by elasticsearch.helpers.bulk.

    At most `workers` bulk requests are in flight and at most `workers`
    more full batches are queued behind them; submit() waits for a slot
    only when both are exhausted.

    Usage:
        sink = ElasticsearchBulkSink(client, bulk_actions=1000, workers=2)
        sink.submit("logs-2016.01", "_doc", "abc", {"message": "hi"})
        sink.flush()
        sink.close()
        print(sink.stats().indexed)
    """

    def __init__(
        self,
        client: Elasticsearch,
        *,
        bulk_actions: int = 1000,
        workers: int = 2,
        preserve_types: bool = False,
        name: str = "rollup-inserter",
    ) -> None:
        if bulk_actions < 1:
            raise ValueError(f"bulk_actions must be >= 1, got {bulk_actions}")
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self._client = client
        self._bulk_actions = bulk_actions
        self._preserve_types = preserve_types
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=name)
        # Bounds running + queued batches so a slow cluster slows submit()
        self._slots = BoundedSemaphore(workers * 2)

        self._lock = Lock()
        self._buffer: list[dict[str, Any]] = []
        self._in_flight: list[Future[None]] = []
        self._closed = False

        self._submitted = 0
        self._committed = 0
        self._indexed = 0
        self._failed = 0

    @property
    def bulk_actions(self) -> int:
        return self._bulk_actions

    def submit(
        self,
        destination_name: str,
        document_type: str,
        document_id: str,
        payload: Mapping[str, Any],
    ) -> None:
        """Buffer one index action; dispatch a batch once bulk_actions are buffered.

        Raises:
            RuntimeError: If the sink has been closed
        """
        action: dict[str, Any] = {
            "_op_type": "index",
            "_index": destination_name,
            "_id": document_id,
            "_source": payload,
        }
        if self._preserve_types and document_type != DEFAULT_DOCUMENT_TYPE:
            action["_type"] = document_type

        with self._lock:
            if self._closed:
                raise RuntimeError("submit() on a closed sink")
            self._buffer.append(action)
            self._submitted += 1
            if len(self._buffer) < self._bulk_actions:
                return
            batch, self._buffer = self._buffer, []
        self._dispatch(batch)

    def flush(self) -> None:
        """Commit everything buffered and wait for all in-flight batches."""
        with self._lock:
            batch, self._buffer = self._buffer, []
        if batch:
            self._dispatch(batch)

        with self._lock:
            pending, self._in_flight = self._in_flight, []
        for future in pending:
            future.result()

    def close(self) -> None:
        """Flush, then stop the worker pool. Idempotent."""
        with self._lock:
            if self._closed:
                return
        self.flush()
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    def stats(self) -> SinkStats:
        """Counters so far. Never waits for in-flight batches."""
        with self._lock:
            return SinkStats(
                submitted=self._submitted,
                committed=self._committed,
                indexed=self._indexed,
                failed=self._failed,
            )

    def _dispatch(self, batch: list[dict[str, Any]]) -> None:
        # Acquired outside self._lock so stats() stays responsive while we wait
        self._slots.acquire()
        try:
            future = self._executor.submit(self._commit, batch)
        except BaseException:
            self._slots.release()
            raise
        with self._lock:
            self._in_flight = [f for f in self._in_flight if not f.done()]
            self._in_flight.append(future)

    def _commit(self, batch: list[dict[str, Any]]) -> None:
        try:
            try:
                indexed, failed = helpers.bulk(
                    self._client,
                    batch,
                    chunk_size=len(batch),
                    stats_only=True,
                    raise_on_error=False,
                    raise_on_exception=False,
                )
            except (ApiError, TransportError) as e:
                logger.warning("bulk_commit_failed", documents=len(batch), error=str(e))
                indexed, failed = 0, len(batch)
            if failed:
                logger.debug("bulk_items_rejected", documents=len(batch), failed=failed)
            with self._lock:
                self._committed += 1
                self._indexed += indexed
                self._failed += failed
        finally:
            self._slots.release()
