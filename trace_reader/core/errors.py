"""
Exceptions raised by the trace read path.

Every error names the operation that failed and the identifiers or criteria it
was working on, and may carry whatever partial result was materialized before
the failure.
"""

from typing import Any, Dict, Optional


class TraceReaderError(Exception):
    """Base class for trace reader errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        partial: Any = None
    ):
        super().__init__(message)
        self.operation = operation
        self.context = context or {}
        self.partial = partial

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error': str(self),
            'type': type(self).__name__,
            'operation': self.operation,
            'context': self.context,
        }


class StorageError(TraceReaderError):
    """
    A storage or query failure.

    The original storage exception is kept unchanged as ``cause`` (and as
    ``__cause__`` when raised with ``from``).
    """

    def __init__(self, operation: str, cause: BaseException,
                 context: Optional[Dict[str, Any]] = None, partial: Any = None):
        super().__init__(
            f"{operation} failed: {cause}",
            operation=operation,
            context=context,
            partial=partial,
        )
        self.cause = cause


class QueryCancelledError(TraceReaderError):
    """The caller cancelled the request or its deadline passed."""


class InvalidQueryError(TraceReaderError, ValueError):
    """Query parameters that can never be satisfied or cannot be parsed."""


class InvalidTraceIDError(InvalidQueryError):
    """A trace ID that is not 1 to 32 hex digits."""
