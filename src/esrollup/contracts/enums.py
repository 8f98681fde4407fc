"""Status values shared between the engine and the CLI renderers."""

from enum import StrEnum


class ReaderState(StrEnum):
    """Lifecycle of a single index reader.

    WAITING_FOR_ADMISSION -> READING -> DONE | FAILED. DONE and FAILED are terminal.
    """

    WAITING_FOR_ADMISSION = "waiting_for_admission"
    READING = "reading"
    DONE = "done"
    FAILED = "failed"


class ProgressStatus(StrEnum):
    """Per-index status shown in the progress table."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
