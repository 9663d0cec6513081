"""
Exception hierarchy for sowdiff.

Only conditions that abort work are exceptions. Degraded states (missing
metadata, failed language-model calls, unmatched sections) are returned as
values on the result models instead.
"""

from sowdiff.models.analysis import FailureKind


class SowDiffError(Exception):
    """Base class for all sowdiff errors."""


class ParseError(SowDiffError):
    """The document container or its main markup part could not be read."""

    def __init__(self, message: str, filename: str | None = None):
        self.filename = filename
        if filename:
            message = f"{filename}: {message}"
        super().__init__(message)


class ExternalServiceError(SowDiffError):
    """A call to the hosted language model failed."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.OTHER):
        self.kind = kind
        super().__init__(message)
