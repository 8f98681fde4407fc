# src/esrollup/plugins/elasticsearch/scroll.py
"""Scroll-API cursor over a source index.

The first page comes from a scrolling search sorted by _doc (cheapest
order for a full export); later pages from the scroll endpoint. An empty
page means the index is exhausted.
"""

from __future__ import annotations

from typing import Any

from elasticsearch import ApiError, Elasticsearch, NotFoundError, TransportError

from esrollup.contracts.errors import ReaderFetchError
from esrollup.contracts.types import DEFAULT_DOCUMENT_TYPE, CursorPage, SourceDocument
from esrollup.core.logging import get_logger

logger = get_logger(__name__)


def _to_document(index: str, hit: dict[str, Any]) -> SourceDocument:
    return SourceDocument(
        index=index,
        document_id=hit["_id"],
        source=hit["_source"],
        document_type=hit.get("_type", DEFAULT_DOCUMENT_TYPE),
    )


def _describe(error: ApiError | TransportError) -> str:
    # elastic-transport errors stringify without their message when no cause is attached
    text = str(error)
    message = str(error.message or "")
    if message and message not in text:
        return f"{text}: {message}"
    return text


class ScrollCursor:
    """Pages through one index. Not thread-safe; owned by a single reader."""

    def __init__(self, client: Elasticsearch, index: str, page_size: int, keepalive: str) -> None:
        self._client = client
        self._index = index
        self._page_size = page_size
        self._keepalive = keepalive
        self._scroll_id: str | None = None
        self._exhausted = False

    @property
    def index(self) -> str:
        return self._index

    def next_page(self) -> CursorPage:
        """Fetch the next page of hits.

        Raises:
            ReaderFetchError: If the search or scroll request fails
        """
        if self._exhausted:
            return CursorPage(documents=(), end_of_data=True)

        try:
            if self._scroll_id is None:
                response = self._client.search(
                    index=self._index,
                    scroll=self._keepalive,
                    size=self._page_size,
                    sort=["_doc"],
                    query={"match_all": {}},
                )
            else:
                response = self._client.scroll(scroll_id=self._scroll_id, scroll=self._keepalive)
        except (ApiError, TransportError) as e:
            raise ReaderFetchError(self._index, _describe(e)) from e

        self._scroll_id = response["_scroll_id"]
        hits = response["hits"]["hits"]
        if not hits:
            self._exhausted = True
            return CursorPage(documents=(), end_of_data=True)
        return CursorPage(documents=tuple(_to_document(self._index, hit) for hit in hits))

    def close(self) -> None:
        """Clear the server-side scroll context, if one was opened."""
        if self._scroll_id is None:
            return
        scroll_id, self._scroll_id = self._scroll_id, None
        try:
            self._client.clear_scroll(scroll_id=scroll_id)
        except NotFoundError:
            # Context already expired
            pass
        except (ApiError, TransportError) as e:
            logger.warning("clear_scroll_failed", index=self._index, error=_describe(e))


class ScrollCursorSource:
    """CursorSource backed by the scroll API of one cluster."""

    def __init__(self, client: Elasticsearch, *, keepalive: str = "5m") -> None:
        self._client = client
        self._keepalive = keepalive

    def open_cursor(self, index: str, page_size: int) -> ScrollCursor:
        return ScrollCursor(self._client, index, page_size, self._keepalive)
