# tests/fixtures/__init__.py
"""Shared test doubles for esrollup tests.

- fakes: FakeCursorSource, FakeCursor, RecordingSink, make_documents
"""
