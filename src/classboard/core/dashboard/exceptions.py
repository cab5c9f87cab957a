"""
Custom exceptions for the dashboard sync engine.

Exception Hierarchy:
    ClassboardError (base)
    ├── SourceError (a backend collection could not be used)
    │   ├── NetworkError (transport failures, non-success status)
    │   └── ParseError (body is not JSON or cannot be decoded)
    ├── StoreError (session storage failures)
    └── EventMutationError (calendar entry create/delete rejected)

SourceError is never fatal to a sync cycle: the orchestrator degrades the
failing source to an empty contribution and keeps the others.

Example:
    >>> from classboard.core.dashboard.exceptions import NetworkError
    >>> try:
    ...     raise NetworkError("students", "HTTP 503", url="/api/students")
    ... except NetworkError as e:
    ...     print(f"Error from {e.source}: {e}")
"""


class ClassboardError(Exception):
    """
    Base exception for all classboard errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class SourceError(ClassboardError):
    """
    Base exception for backend collection errors.

    Attributes:
        source: Name of the source that failed (e.g., "students", "results")
        message: Human-readable error message
        context: Additional context about the failure
    """

    def __init__(self, source: str, message: str, **context: object) -> None:
        super().__init__(message, source=source, **context)
        self.source = source

    def __str__(self) -> str:
        """Return string representation with source name."""
        return f"[{self.source}] {self.message}"


class NetworkError(SourceError):
    """
    Exception for network-related errors.

    Raised when every configured path for a source failed with a transport
    error or a non-success status. The original exception is preserved via
    __cause__.
    """


class ParseError(SourceError):
    """
    Exception for response body errors.

    Raised when a source answered successfully but the body was not JSON
    (e.g. an HTML fallback page) or could not be decoded.
    """


class StoreError(ClassboardError):
    """
    Exception for session storage errors.

    Raised by SessionStore when reading or writing a key fails. The
    snapshot cache catches it, since caching is best-effort.
    """


class EventMutationError(ClassboardError):
    """
    Exception raised when the backend rejects a calendar entry change.

    The message is the server-provided error text when available, so it
    can be shown to the user as-is.

    Attributes:
        status_code: HTTP status code, or None for transport failures
    """

    def __init__(self, message: str, status_code: int | None = None, **context: object) -> None:
        super().__init__(message, status_code=status_code, **context)
        self.status_code = status_code


__all__ = [
    "ClassboardError",
    "SourceError",
    "NetworkError",
    "ParseError",
    "StoreError",
    "EventMutationError",
]
