"""Elasticsearch implementations of the cursor source, bulk sink and index discovery."""

from esrollup.plugins.elasticsearch.bulk_sink import ElasticsearchBulkSink
from esrollup.plugins.elasticsearch.client import create_client
from esrollup.plugins.elasticsearch.discovery import discover_indexes, list_index_names, match_indexes
from esrollup.plugins.elasticsearch.scroll import ScrollCursor, ScrollCursorSource

__all__ = [
    "ElasticsearchBulkSink",
    "ScrollCursor",
    "ScrollCursorSource",
    "create_client",
    "discover_indexes",
    "list_index_names",
    "match_indexes",
]
