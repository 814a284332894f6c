"""Core types and the trace reader facade."""

from .errors import (
    InvalidQueryError,
    InvalidTraceIDError,
    QueryCancelledError,
    StorageError,
    TraceReaderError,
)
from .types import (
    DependencyLink,
    ReaderConfig,
    Span,
    Trace,
    TraceID,
    TraceQueryCriteria,
)
from .context import RequestContext
from .reader import SpanReader, TraceReader
