# src/esrollup/plugins/elasticsearch/discovery.py
"""Find the dated source indexes to roll up and name their destinations.

A source index qualifies when its name matches the input filter (regex
search, not full match) AND decodes as a date with the input pattern.
Its destination is that date formatted with the output pattern, so many
daily indexes collapse into one monthly (or yearly, ...) index.

    input_filter   ^logstash-2016\\.01\\.
    input_pattern  logstash-%Y.%m.%d
    output_pattern logstash-%Y.%m
    logstash-2016.01.02 -> logstash-2016.01
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime

from elasticsearch import Elasticsearch

from esrollup.contracts.types import IndexMatch
from esrollup.core.logging import get_logger

logger = get_logger(__name__)


def list_index_names(client: Elasticsearch) -> list[str]:
    """Return the names of all open indexes on the cluster."""
    rows = client.cat.indices(format="json", h="index", expand_wildcards="open")
    return [row["index"] for row in rows]


def match_indexes(
    names: Iterable[str],
    input_filter: re.Pattern[str],
    input_pattern: str,
    output_pattern: str,
) -> list[IndexMatch]:
    """Filter and date-decode index names.

    Names that match the filter but do not decode with input_pattern are
    skipped, not treated as errors.

    Returns:
        Matches sorted by source index name.
    """
    matches: list[IndexMatch] = []
    for name in names:
        if not input_filter.search(name):
            continue
        try:
            index_date = datetime.strptime(name, input_pattern)
        except ValueError:
            logger.debug("index_skipped", index=name, reason="name does not match input pattern")
            continue
        matches.append(IndexMatch(source_name=name, dest_name=index_date.strftime(output_pattern)))
    return sorted(matches, key=lambda match: match.source_name)


def discover_indexes(
    client: Elasticsearch,
    input_filter: re.Pattern[str],
    input_pattern: str,
    output_pattern: str,
) -> list[IndexMatch]:
    """List the cluster's indexes and return the ones to roll up."""
    names = list_index_names(client)
    matches = match_indexes(names, input_filter, input_pattern, output_pattern)
    logger.info("indexes_discovered", listed=len(names), matched=len(matches))
    return matches
