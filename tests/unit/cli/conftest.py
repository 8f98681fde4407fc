# tests/unit/cli/conftest.py
"""CLI test fixtures."""

from collections.abc import Iterator

import pytest

from esrollup.core.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """The CLI callback points logging at CliRunner's stderr, which is closed after invoke."""
    yield
    configure_logging()
