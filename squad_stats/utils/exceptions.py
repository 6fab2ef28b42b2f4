"""
Custom exceptions for the stats forwarder with operator-friendly messages.

None of these are allowed to escape a scheduled task or event handler; they
are raised at the point of failure and caught at the operation boundary.
"""

class StatsForwarderError(Exception):
    """Base exception for forwarder errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class SourceUnavailableError(StatsForwarderError):
    """Raised when an admin list source cannot be fetched or read."""
    def __init__(self, source: str, details: str = None):
        super().__init__(
            f"Admin list source '{source}' unavailable: {details}",
            f"Could not load admin list {source}"
        )
        self.source = source

class AdminListParseError(StatsForwarderError):
    """Raised when an admin list line cannot be resolved."""
    def __init__(self, line_number: int, line: str, reason: str):
        super().__init__(
            f"Line {line_number} '{line.strip()}': {reason}",
            f"Skipped admin list line {line_number}: {reason}"
        )
        self.line_number = line_number
        self.reason = reason

class LedgerCorruptError(StatsForwarderError):
    """Raised when a persisted JSON file cannot be decoded."""
    def __init__(self, path: str, details: str = None):
        super().__init__(
            f"Persisted file {path} is corrupt: {details}",
            f"Local data file {path} was unreadable and has been set aside"
        )
        self.path = path
