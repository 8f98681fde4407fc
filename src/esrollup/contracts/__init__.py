"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes are NOT re-exported here - import them from
esrollup.core.config.

Import patterns:
    from esrollup.contracts import IndexTask, TransferUnit
    from esrollup.core.config import RollupSettings
"""

from esrollup.contracts.enums import ProgressStatus, ReaderState
from esrollup.contracts.errors import ConfigurationError, HandoffClosedError, ReaderFetchError
from esrollup.contracts.protocols import BulkSink, Cursor, CursorSource, ProgressRenderer
from esrollup.contracts.types import (
    DEFAULT_DOCUMENT_TYPE,
    AdmissionState,
    CursorPage,
    IndexMatch,
    IndexTask,
    ProgressRecord,
    ProgressReport,
    RollupResult,
    SinkStats,
    SourceDocument,
    TransferUnit,
)

__all__ = [
    "DEFAULT_DOCUMENT_TYPE",
    "AdmissionState",
    "BulkSink",
    "ConfigurationError",
    "Cursor",
    "CursorPage",
    "CursorSource",
    "HandoffClosedError",
    "IndexMatch",
    "IndexTask",
    "ProgressRecord",
    "ProgressRenderer",
    "ProgressReport",
    "ProgressStatus",
    "ReaderFetchError",
    "ReaderState",
    "RollupResult",
    "SinkStats",
    "SourceDocument",
    "TransferUnit",
]
