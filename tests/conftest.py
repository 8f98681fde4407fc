# tests/conftest.py
"""Shared test fixtures.

In-memory collaborators live in tests/fixtures/fakes.py.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

from __future__ import annotations

import os

import pytest
from hypothesis import settings

from tests.fixtures.fakes import RecordingSink

settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("nightly", max_examples=1000, deadline=None)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "ci"))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
