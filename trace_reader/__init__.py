"""
Trace Reader - relational span store read path
"""

__version__ = "1.0.0"

from .core.context import RequestContext
from .core.errors import (
    InvalidQueryError,
    InvalidTraceIDError,
    QueryCancelledError,
    StorageError,
    TraceReaderError,
)
from .core.reader import SpanReader, TraceReader
from .core.types import DependencyLink, ReaderConfig, Trace, TraceID, TraceQueryCriteria

__all__ = [
    "TraceReader",
    "SpanReader",
    "ReaderConfig",
    "RequestContext",
    "TraceID",
    "TraceQueryCriteria",
    "Trace",
    "DependencyLink",
    "TraceReaderError",
    "StorageError",
    "QueryCancelledError",
    "InvalidQueryError",
    "InvalidTraceIDError",
]
