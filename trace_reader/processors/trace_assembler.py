"""
Trace assembly from flat span rows.
"""

from datetime import timedelta
from typing import Dict, List, Optional, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import StorageError
from ..core.types import Process, ProcessMapping, Span, SpanReference, Trace, TraceID
from ..storage import schema

log = structlog.get_logger()


class TraceAssembler:
    """Builds Trace aggregates from the span rows sharing one trace ID."""

    def load_spans(self, session: Session, trace_id: TraceID) -> Sequence[schema.Span]:
        """
        Fetch the span rows of one trace with operation, service and outbound
        references loaded, ordered by start time.

        Raises:
            StorageError: If the query fails
        """
        statement = (
            select(schema.Span)
            .where(
                schema.Span.trace_id_low == schema.encode_id_half(trace_id.low),
                schema.Span.trace_id_high == schema.encode_id_half(trace_id.high),
            )
            .order_by(schema.Span.start_time.asc(), schema.Span.id.asc())
        )
        try:
            return session.execute(statement).unique().scalars().all()
        except SQLAlchemyError as err:
            log.error("Span query failed", trace_id=trace_id.to_hex(), error=str(err))
            raise StorageError('get_trace', err, context={'trace_id': trace_id.to_hex()}) from err

    def assemble(self, rows: Sequence[schema.Span]) -> Optional[Trace]:
        """
        Project span rows into a Trace.

        Each process ID gets a single process map entry; when several spans
        share a process ID the first one seen supplies the service and tags.

        Args:
            rows: Span rows of a single trace

        Returns:
            Trace, or None when there are no rows
        """
        if not rows:
            return None

        spans: List[Span] = []
        processes: Dict[str, ProcessMapping] = {}
        for row in rows:
            spans.append(self._to_span(row))
            if row.process_id not in processes:
                processes[row.process_id] = ProcessMapping(
                    process_id=row.process_id,
                    process=Process(
                        service_name=row.service.service_name,
                        tags=dict(row.process_tags or {}),
                    ),
                )

        return Trace(spans=spans, process_map=list(processes.values()))

    def get_trace(self, session: Session, trace_id: TraceID) -> Optional[Trace]:
        return self.assemble(self.load_spans(session, trace_id))

    @staticmethod
    def _to_span(row: schema.Span) -> Span:
        return Span(
            span_id=row.id,
            trace_id=TraceID(
                low=schema.decode_id_half(row.trace_id_low),
                high=schema.decode_id_half(row.trace_id_high),
            ),
            operation_name=row.operation.operation_name,
            service_name=row.service.service_name,
            process_id=row.process_id,
            start_time=row.start_time,
            duration=timedelta(microseconds=row.duration),
            references=[
                SpanReference(ref_type=ref.ref_type, child_span_id=ref.child_span_id)
                for ref in row.span_refs
            ],
        )
