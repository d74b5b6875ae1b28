"""
Exception classes for treeaudit.

Per-item problems (an unreadable file, a directory that vanished mid-scan)
never raise; they are collected as ScanWarning records. The exceptions here
cover the conditions that abort a whole analysis run.
"""

from typing import Optional


class TreeAuditError(Exception):
    """
    Base exception for analysis failures.

    Attributes:
        message: A human-readable error message describing what went wrong.
        original_exception: The underlying exception that caused this error, if any.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.message = message or "Analysis failed"
        super().__init__(self.message)
        self.original_exception = original_exception


class TargetNotAccessibleError(TreeAuditError):
    """
    Raised when the target path cannot be analyzed at all.

    The target is missing, is not a directory, lies under an exclude path,
    or cannot be enumerated.
    """

    def __init__(
        self,
        path: str,
        reason: str,
        original_exception: Optional[Exception] = None,
    ):
        self.path = path
        self.reason = reason
        super().__init__(
            message=f"Cannot analyze {path}: {reason}",
            original_exception=original_exception,
        )


class AnalysisCancelledError(TreeAuditError):
    """Raised when a run is cancelled; partial results are discarded."""

    def __init__(self, stage: Optional[str] = None):
        self.stage = stage
        message = f"Analysis cancelled during {stage}" if stage else "Analysis cancelled"
        super().__init__(message=message)


class IncompleteAnalysisError(TreeAuditError):
    """Raised when a result would have no directory tree root."""
