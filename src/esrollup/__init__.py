"""
esrollup: consolidate time-partitioned Elasticsearch indexes.

Reads every document from a set of dated source indexes and re-inserts it
into a destination index derived from the source index's date.
"""

__version__ = "0.1.0"
