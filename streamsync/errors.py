"""
errors.py
---------
Exception taxonomy for the offset-correction workflow.

Every failure a user can trigger derives from StreamSyncError so the session
can turn it into a single message at the operation boundary.
"""


class StreamSyncError(Exception):
    """Base class for all workflow errors."""


class ValidationError(StreamSyncError):
    """Unsupported extension or oversize file."""


class EngineError(StreamSyncError):
    """The transcoding engine exited with an error."""

    def __init__(self, message: str, diagnostic: str = ""):
        super().__init__(message)
        self.diagnostic = diagnostic


class EngineUnavailableError(EngineError):
    """The transcoding engine could not be initialized."""


class NormalizationError(StreamSyncError):
    """Preview conversion failed; carries the engine diagnostic."""

    def __init__(self, message: str, diagnostic: str = ""):
        super().__init__(message)
        self.diagnostic = diagnostic


class AnalysisError(StreamSyncError):
    """Network or server failure during offset detection."""

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ExportError(StreamSyncError):
    """Engine failure while writing the corrected file."""

    def __init__(self, message: str, diagnostic: str = ""):
        super().__init__(message)
        self.diagnostic = diagnostic


class BusyError(StreamSyncError):
    """An operation of the same kind is already running."""
