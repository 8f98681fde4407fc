"""Protocols for the collaborators the pipeline engine talks to.

The engine only ever sees these; the Elasticsearch implementations live in
esrollup.plugins.elasticsearch and tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from esrollup.contracts.types import CursorPage, ProgressReport, SinkStats


class Cursor(Protocol):
    """Stateful paging handle over one source index."""

    def next_page(self) -> CursorPage:
        """Fetch the next page.

        Returns:
            The next page; end_of_data=True once the index is exhausted.

        Raises:
            ReaderFetchError: If the page could not be fetched.
        """
        ...

    def close(self) -> None:
        """Release any server-side cursor state."""
        ...


class CursorSource(Protocol):
    """Opens cursors against source indexes."""

    def open_cursor(self, index: str, page_size: int) -> Cursor: ...


class BulkSink(Protocol):
    """Batching writer for transfer units.

    submit() never waits on cluster I/O directly, though it may wait for a
    free batch slot. flush() blocks until everything submitted so far is
    committed. stats() never blocks on in-flight work.
    """

    def submit(
        self,
        destination_name: str,
        document_type: str,
        document_id: str,
        payload: Mapping[str, Any],
    ) -> None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...

    def stats(self) -> SinkStats: ...


class ProgressRenderer(Protocol):
    """Presents progress. Purely presentational, never feeds back into the run."""

    def render(self, report: ProgressReport) -> None: ...
