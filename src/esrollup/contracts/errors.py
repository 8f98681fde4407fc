"""Exception types that cross subsystem boundaries.

ConfigurationError is fatal and surfaces before any reader starts.
ReaderFetchError is local to one index: the reader is marked failed and
the rest of the run continues.
"""

from __future__ import annotations


class ConfigurationError(Exception):
    """Settings or flags are invalid; the run must not start.

    Attributes:
        problems: Individual problems, one per offending setting
    """

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.problems = problems or []


class ReaderFetchError(Exception):
    """A source index cursor failed mid-read.

    Not retried. The owning reader records the index as done (and failed)
    with the exact number of documents it emitted before the error.

    Attributes:
        index: Source index whose cursor failed
    """

    def __init__(self, index: str, message: str) -> None:
        super().__init__(f"{index}: {message}")
        self.index = index


class HandoffClosedError(Exception):
    """Raised by SynchronousHandoff.send() once the receiving side has gone away."""
