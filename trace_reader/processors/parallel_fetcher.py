"""
Concurrent per-trace assembly for find_traces.
"""

import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy.orm import sessionmaker

from ..core.context import RequestContext
from ..core.errors import TraceReaderError
from ..core.types import Trace, TraceID
from .trace_assembler import TraceAssembler

log = structlog.get_logger()

# how often the collecting thread re-checks the caller's context
POLL_INTERVAL = 0.05


class ParallelTraceFetcher:
    """Assemble many traces, each with its own session, on a bounded thread pool."""

    def __init__(self, session_factory: sessionmaker, assembler: Optional[TraceAssembler] = None,
                 num_workers: Optional[int] = None):
        """
        Initialize parallel fetcher.

        Args:
            session_factory: Factory producing one independent Session per fetch
            assembler: TraceAssembler instance (default: new instance)
            num_workers: Number of worker threads (default: CPU count)
        """
        self.session_factory = session_factory
        self.assembler = assembler or TraceAssembler()
        self.num_workers = num_workers or os.cpu_count() or 4

    def _fetch_single(self, trace_id: TraceID, stop: threading.Event) -> Tuple[TraceID, Optional[Trace]]:
        """Load and assemble one trace. Runs in a worker thread."""
        if stop.is_set():
            return trace_id, None
        with self.session_factory() as session:
            return trace_id, self.assembler.get_trace(session, trace_id)

    def fetch(self, trace_ids: Sequence[TraceID], ctx: Optional[RequestContext] = None,
              progress_callback: Optional[Callable[[int, int], None]] = None) -> List[Trace]:
        """
        Assemble each trace ID independently.

        Args:
            trace_ids: Trace IDs to load
            ctx: Caller's cancellation/deadline signal
            progress_callback: Optional callback(completed, total) for progress updates

        Returns:
            Assembled traces in ``trace_ids`` order; IDs without spans are skipped

        Raises:
            TraceReaderError: First failure, with ``partial`` set to the traces
                              collected before it
        """
        ctx = ctx or RequestContext()
        total = len(trace_ids)
        if total == 0:
            return []

        if total == 1 or self.num_workers <= 1:
            collected = self._fetch_sequential(trace_ids, ctx, progress_callback)
        else:
            collected = self._fetch_concurrent(trace_ids, ctx, progress_callback)

        return self._ordered(trace_ids, collected)

    def _fetch_concurrent(self, trace_ids, ctx, progress_callback) -> Dict[TraceID, Trace]:
        stop = threading.Event()
        collected: Dict[TraceID, Trace] = {}
        total = len(trace_ids)
        completed = 0

        executor = ThreadPoolExecutor(
            max_workers=min(self.num_workers, total), thread_name_prefix='trace-fetch'
        )
        try:
            pending = {executor.submit(self._fetch_single, trace_id, stop) for trace_id in trace_ids}
            while pending:
                ctx.check('find_traces', partial=self._ordered(trace_ids, collected))
                done, pending = wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    trace_id, trace = self._result(future, trace_ids, collected)
                    if trace is not None:
                        collected[trace_id] = trace
                    completed += 1
                    if progress_callback:
                        progress_callback(completed, total)
        except TraceReaderError as err:
            log.warning("Trace batch aborted", operation=err.operation,
                        collected=len(collected), total=total, error=str(err))
            raise
        finally:
            stop.set()
            executor.shutdown(wait=False, cancel_futures=True)

        return collected

    def _result(self, future: Future, trace_ids, collected):
        try:
            return future.result()
        except TraceReaderError as err:
            err.partial = self._ordered(trace_ids, collected)
            raise

    def _fetch_sequential(self, trace_ids, ctx, progress_callback) -> Dict[TraceID, Trace]:
        """
        Fallback sequential processing for a single trace or a single worker.
        """
        collected: Dict[TraceID, Trace] = {}
        total = len(trace_ids)

        with self.session_factory() as session:
            for completed, trace_id in enumerate(trace_ids, start=1):
                ctx.check('find_traces', partial=self._ordered(trace_ids, collected))
                try:
                    trace = self.assembler.get_trace(session, trace_id)
                except TraceReaderError as err:
                    err.partial = self._ordered(trace_ids, collected)
                    log.warning("Trace batch aborted", operation=err.operation,
                                collected=len(collected), total=total, error=str(err))
                    raise
                if trace is not None:
                    collected[trace_id] = trace
                if progress_callback:
                    progress_callback(completed, total)

        return collected

    @staticmethod
    def _ordered(trace_ids, collected) -> List[Trace]:
        return [collected[trace_id] for trace_id in trace_ids if trace_id in collected]
