"""
Type definitions for the trace read path.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .errors import InvalidQueryError, InvalidTraceIDError

DEFAULT_NUM_TRACES = 10
# keeps fetch_multiplier * num_traces inside a 64-bit LIMIT
MAX_NUM_TRACES = 10_000
MAX_UINT64 = (1 << 64) - 1


@dataclass(frozen=True)
class TraceID:
    """128-bit trace identifier split into two unsigned 64-bit halves."""
    low: int
    high: int = 0

    def __post_init__(self):
        for half in (self.low, self.high):
            if not 0 <= half <= MAX_UINT64:
                raise InvalidTraceIDError(f"Trace ID half out of range: {half}")

    def to_hex(self) -> str:
        if self.high == 0:
            return f"{self.low:016x}"
        return f"{self.high:016x}{self.low:016x}"

    @classmethod
    def from_hex(cls, value: str) -> 'TraceID':
        """
        Parse a hex trace ID of 1 to 32 digits.

        Args:
            value: Hex string, e.g. "00000000000000010000000000000002"

        Returns:
            TraceID instance

        Raises:
            InvalidTraceIDError: If the string is empty, too long or not hex
        """
        if not value or len(value) > 32:
            raise InvalidTraceIDError(f"Invalid trace ID length: {value!r}")
        try:
            if len(value) > 16:
                return cls(low=int(value[-16:], 16), high=int(value[:-16], 16))
            return cls(low=int(value, 16))
        except ValueError:
            raise InvalidTraceIDError(f"Trace ID is not hexadecimal: {value!r}") from None

    def __str__(self) -> str:
        return self.to_hex()


@dataclass
class TraceQueryCriteria:
    """Optional, conjunctive criteria for finding traces."""
    service_name: Optional[str] = None
    operation_name: Optional[str] = None
    start_time_min: Optional[datetime] = None
    start_time_max: Optional[datetime] = None
    duration_min: Optional[timedelta] = None
    duration_max: Optional[timedelta] = None
    tags: Dict[str, str] = field(default_factory=dict)
    num_traces: int = 0

    def effective_num_traces(self) -> int:
        if self.num_traces <= 0:
            return DEFAULT_NUM_TRACES
        return self.num_traces

    def validate(self) -> None:
        """
        Reject criteria whose bounds can never match.

        Raises:
            InvalidQueryError: If a lower bound exceeds its upper bound, or
                num_traces is above MAX_NUM_TRACES
        """
        if self.num_traces > MAX_NUM_TRACES:
            raise InvalidQueryError(
                f"num_traces must be at most {MAX_NUM_TRACES}, got {self.num_traces}",
                operation="find_trace_ids",
                context={'num_traces': self.num_traces},
            )
        if (self.start_time_min and self.start_time_max
                and self.start_time_min > self.start_time_max):
            raise InvalidQueryError(
                "start_time_min is after start_time_max",
                operation="find_trace_ids",
                context=self.to_dict(),
            )
        if (self.duration_min and self.duration_max
                and self.duration_min > self.duration_max):
            raise InvalidQueryError(
                "duration_min is greater than duration_max",
                operation="find_trace_ids",
                context=self.to_dict(),
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a loggable dictionary, omitting unset fields."""
        data = {
            'service_name': self.service_name,
            'operation_name': self.operation_name,
            'start_time_min': self.start_time_min.isoformat() if self.start_time_min else None,
            'start_time_max': self.start_time_max.isoformat() if self.start_time_max else None,
            'duration_min': self.duration_min.total_seconds() if self.duration_min else None,
            'duration_max': self.duration_max.total_seconds() if self.duration_max else None,
            'tags': dict(self.tags) if self.tags else None,
        }
        data = {k: v for k, v in data.items() if v is not None}
        data['num_traces'] = self.effective_num_traces()
        return data


@dataclass
class SpanReference:
    """Outbound causal edge from a span to another span (by storage id)."""
    ref_type: str
    child_span_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {'ref_type': self.ref_type, 'child_span_id': self.child_span_id}


@dataclass
class Span:
    """A single timed unit of work, projected from a storage row."""
    span_id: int
    trace_id: TraceID
    operation_name: str
    service_name: str
    process_id: str
    start_time: datetime
    duration: timedelta
    references: List[SpanReference] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'span_id': self.span_id,
            'trace_id': self.trace_id.to_hex(),
            'operation_name': self.operation_name,
            'service_name': self.service_name,
            'process_id': self.process_id,
            'start_time': self.start_time.isoformat(),
            'duration_us': self.duration // timedelta(microseconds=1),
            'references': [ref.to_dict() for ref in self.references],
        }


@dataclass
class Process:
    """Service and tag set that emitted a group of spans."""
    service_name: str
    tags: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProcessMapping:
    process_id: str
    process: Process

    def to_dict(self) -> Dict[str, Any]:
        return {
            'process_id': self.process_id,
            'service_name': self.process.service_name,
            'tags': dict(self.process.tags),
        }


@dataclass
class Trace:
    """
    All spans sharing one trace ID, plus a process map holding exactly one
    entry per distinct process ID.
    """
    spans: List[Span] = field(default_factory=list)
    process_map: List[ProcessMapping] = field(default_factory=list)

    @property
    def trace_id(self) -> Optional[TraceID]:
        return self.spans[0].trace_id if self.spans else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trace_id': self.trace_id.to_hex() if self.trace_id else None,
            'spans': [span.to_dict() for span in self.spans],
            'process_map': [mapping.to_dict() for mapping in self.process_map],
        }


@dataclass
class DependencyLink:
    """Aggregated call count between a parent and a child service."""
    parent_id: int
    parent: str
    child_id: int
    child: str
    call_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'parent_id': self.parent_id,
            'parent': self.parent,
            'child_id': self.child_id,
            'child': self.child,
            'call_count': self.call_count,
        }


class ReaderConfig:
    """Configuration for the trace reader."""

    def __init__(
        self,
        database_url: str = "sqlite:///traces.db",
        max_workers: int = 4,
        fetch_multiplier: int = 100,
        query_timeout: Optional[float] = 30.0,
        echo_sql: bool = False
    ):
        """
        Initialize reader configuration.

        Args:
            database_url: SQLAlchemy URL of the span store
            max_workers: Upper bound on concurrent per-trace fetches in find_traces.
                         1 disables concurrency.
            fetch_multiplier: Row over-fetch factor applied to the requested trace
                              count before deduplicating trace IDs
            query_timeout: Default deadline in seconds for HTTP and CLI requests.
                           None disables the deadline.
            echo_sql: If True, SQLAlchemy logs every statement
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if fetch_multiplier < 1:
            raise ValueError("fetch_multiplier must be at least 1")
        self.database_url = database_url
        self.max_workers = max_workers
        self.fetch_multiplier = fetch_multiplier
        self.query_timeout = query_timeout
        self.echo_sql = echo_sql

    @classmethod
    def from_env(cls) -> 'ReaderConfig':
        """Build a configuration from TRACE_READER_* environment variables."""
        timeout = os.getenv('TRACE_READER_QUERY_TIMEOUT', '30')
        return cls(
            database_url=os.getenv('TRACE_READER_DATABASE_URL', 'sqlite:///traces.db'),
            max_workers=int(os.getenv('TRACE_READER_MAX_WORKERS', '4')),
            fetch_multiplier=int(os.getenv('TRACE_READER_FETCH_MULTIPLIER', '100')),
            query_timeout=float(timeout) if float(timeout) > 0 else None,
            echo_sql=os.getenv('TRACE_READER_ECHO_SQL', 'false').lower() == 'true',
        )
