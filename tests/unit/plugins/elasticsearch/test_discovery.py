# tests/unit/plugins/elasticsearch/test_discovery.py
"""Tests for index discovery and destination naming."""

import re
from unittest.mock import MagicMock

import pytest

from esrollup.contracts.types import IndexMatch
from esrollup.plugins.elasticsearch.discovery import discover_indexes, list_index_names, match_indexes

DAILY = "logstash-%Y.%m.%d"
MONTHLY = "logstash-%Y.%m"


class TestMatchIndexes:
    def test_daily_indexes_roll_up_to_month(self) -> None:
        names = ["logstash-2016.01.02", "logstash-2016.01.01", "logstash-2016.02.01"]

        matches = match_indexes(names, re.compile(r"^logstash-2016\."), DAILY, MONTHLY)

        assert matches == [
            IndexMatch("logstash-2016.01.01", "logstash-2016.01"),
            IndexMatch("logstash-2016.01.02", "logstash-2016.01"),
            IndexMatch("logstash-2016.02.01", "logstash-2016.02"),
        ]

    def test_filter_is_a_search_not_a_full_match(self) -> None:
        matches = match_indexes(["logstash-2016.01.05"], re.compile(r"2016\.01"), DAILY, MONTHLY)
        assert [m.source_name for m in matches] == ["logstash-2016.01.05"]

    def test_filtered_out_names_skipped(self) -> None:
        names = [".kibana", "metrics-2016.01.01", "logstash-2015.12.31"]
        assert match_indexes(names, re.compile(r"^logstash-2016"), DAILY, MONTHLY) == []

    def test_names_that_do_not_decode_are_skipped(self) -> None:
        """A filter hit that is not a date under input_pattern is ignored, not an error."""
        names = ["logstash-2016.01.01", "logstash-2016.01.01-reindexed", "logstash-2016.13.01"]

        matches = match_indexes(names, re.compile("^logstash-"), DAILY, MONTHLY)

        assert [m.source_name for m in matches] == ["logstash-2016.01.01"]

    @pytest.mark.parametrize(
        ("output_pattern", "expected"),
        [("logstash-%Y", "logstash-2016"), ("logs-%Y-%m", "logs-2016-03"), ("archive", "archive")],
    )
    def test_output_pattern_shapes_destination(self, output_pattern: str, expected: str) -> None:
        matches = match_indexes(["logstash-2016.03.09"], re.compile("."), DAILY, output_pattern)
        assert matches[0].dest_name == expected


class TestDiscoverIndexes:
    def test_lists_open_indexes_from_cat_api(self) -> None:
        client = MagicMock()
        client.cat.indices.return_value = [{"index": "logstash-2016.01.01"}, {"index": ".kibana"}]

        assert list_index_names(client) == ["logstash-2016.01.01", ".kibana"]
        client.cat.indices.assert_called_once_with(format="json", h="index", expand_wildcards="open")

    def test_discover_combines_listing_and_matching(self) -> None:
        client = MagicMock()
        client.cat.indices.return_value = [{"index": "logstash-2016.01.01"}, {"index": ".kibana"}]

        matches = discover_indexes(client, re.compile("^logstash-"), DAILY, MONTHLY)

        assert matches == [IndexMatch("logstash-2016.01.01", "logstash-2016.01")]
