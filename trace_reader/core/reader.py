"""
Main trace reader facade.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional, Protocol

import structlog
from sqlalchemy.orm import sessionmaker

from ..core.context import RequestContext
from ..core.types import DependencyLink, ReaderConfig, Trace, TraceID, TraceQueryCriteria
from ..processors import (
    DependencyAggregator,
    ParallelTraceFetcher,
    ServiceCatalog,
    TraceAssembler,
    TraceIDFinder,
)
from ..storage import create_session_factory

log = structlog.get_logger()


class SpanReader(Protocol):
    """Read interface expected by the upstream query service."""

    def get_services(self, ctx: Optional[RequestContext] = None) -> List[str]: ...

    def get_operations(self, service_name: Optional[str] = None,
                       ctx: Optional[RequestContext] = None) -> List[str]: ...

    def get_trace(self, trace_id: TraceID, ctx: Optional[RequestContext] = None) -> Optional[Trace]: ...

    def find_trace_ids(self, criteria: TraceQueryCriteria,
                       ctx: Optional[RequestContext] = None) -> List[TraceID]: ...

    def find_traces(self, criteria: TraceQueryCriteria,
                    ctx: Optional[RequestContext] = None) -> List[Trace]: ...

    def get_dependencies(self, end_ts: datetime, lookback: timedelta,
                         ctx: Optional[RequestContext] = None) -> List[DependencyLink]: ...


class TraceReader:
    """
    Queries a relational span store and reassembles traces and dependency links.

    Storage errors surface as StorageError with the original exception as
    ``__cause__``; nothing is retried.
    """

    def __init__(self, config: Optional[ReaderConfig] = None,
                 session_factory: Optional[sessionmaker] = None):
        """
        Initialize the TraceReader.

        Args:
            config: ReaderConfig instance (default: ReaderConfig())
            session_factory: Existing session factory; built from config when omitted
        """
        self.config = config or ReaderConfig()
        self.session_factory = session_factory or create_session_factory(self.config)

        # Initialize components
        self.catalog = ServiceCatalog()
        self.trace_id_finder = TraceIDFinder(fetch_multiplier=self.config.fetch_multiplier)
        self.assembler = TraceAssembler()
        self.dependency_aggregator = DependencyAggregator()
        self.fetcher = ParallelTraceFetcher(
            self.session_factory,
            self.assembler,
            num_workers=self.config.max_workers,
        )

    def get_services(self, ctx: Optional[RequestContext] = None) -> List[str]:
        (ctx or RequestContext()).check('get_services')
        with self.session_factory() as session:
            services = self.catalog.list_services(session)
        log.info("Listed services", count=len(services))
        return services

    def get_operations(self, service_name: Optional[str] = None,
                       ctx: Optional[RequestContext] = None) -> List[str]:
        (ctx or RequestContext()).check('get_operations')
        with self.session_factory() as session:
            operations = self.catalog.list_operations(session, service_name)
        log.info("Listed operations", service_name=service_name, count=len(operations))
        return operations

    def get_trace(self, trace_id: TraceID, ctx: Optional[RequestContext] = None) -> Optional[Trace]:
        """
        Load one trace by ID.

        Returns:
            Trace with spans ordered by start time, or None if no span has this ID
        """
        (ctx or RequestContext()).check('get_trace')
        with self.session_factory() as session:
            trace = self.assembler.get_trace(session, trace_id)
        log.info("Loaded trace", trace_id=trace_id.to_hex(),
                 span_count=len(trace.spans) if trace else 0)
        return trace

    def find_trace_ids(self, criteria: TraceQueryCriteria,
                       ctx: Optional[RequestContext] = None) -> List[TraceID]:
        """
        Resolve criteria to unique trace IDs, most recent first.

        Raises:
            InvalidQueryError: If the criteria bounds are inconsistent
            StorageError: If the query fails
        """
        criteria.validate()
        (ctx or RequestContext()).check('find_trace_ids')
        with self.session_factory() as session:
            trace_ids = self.trace_id_finder.find_trace_ids(session, criteria)
        log.info("Found trace IDs", count=len(trace_ids), **criteria.to_dict())
        return trace_ids

    def find_traces(self, criteria: TraceQueryCriteria,
                    ctx: Optional[RequestContext] = None,
                    progress_callback: Optional[Callable[[int, int], None]] = None) -> List[Trace]:
        """
        Find trace IDs matching the criteria, then assemble each trace.

        Per-trace loads run concurrently (up to ``config.max_workers``), each
        with its own session. The first failure cancels outstanding loads.
        ``progress_callback(completed, total)`` is called after each load.

        Raises:
            StorageError: With ``partial`` holding the traces already assembled
            QueryCancelledError: If ``ctx`` is cancelled or expires
        """
        ctx = ctx or RequestContext()
        trace_ids = self.find_trace_ids(criteria, ctx)
        traces = self.fetcher.fetch(trace_ids, ctx, progress_callback)
        log.info("Found traces", count=len(traces), trace_id_count=len(trace_ids))
        return traces

    def get_dependencies(self, end_ts: datetime, lookback: timedelta,
                         ctx: Optional[RequestContext] = None) -> List[DependencyLink]:
        (ctx or RequestContext()).check('get_dependencies')
        with self.session_factory() as session:
            links = self.dependency_aggregator.get_dependencies(session, end_ts, lookback)
        log.info("Computed dependencies", end_ts=end_ts.isoformat(),
                 lookback_s=lookback.total_seconds(), count=len(links))
        return links
