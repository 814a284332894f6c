"""
Resolves trace query criteria into unique trace IDs.
"""

from typing import Dict, List

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import StorageError
from ..core.types import TraceID, TraceQueryCriteria
from ..filters import build_trace_filter
from ..filters.filter_builder import (
    DURATION,
    OPERATION_NAME,
    PROCESS_TAGS,
    SERVICE_NAME,
    START_TIME,
)
from ..storage import schema

log = structlog.get_logger()

FILTER_COLUMNS = {
    SERVICE_NAME: schema.Service.service_name,
    OPERATION_NAME: schema.Operation.operation_name,
    START_TIME: schema.Span.start_time,
    DURATION: schema.Span.duration,
    PROCESS_TAGS: schema.Span.process_tags,
}


class TraceIDFinder:
    """
    Finds the trace IDs whose spans match a query.

    The span/operation/service join yields one row per matching span, so a
    busy trace can fill the row budget on its own. Rows are therefore
    over-fetched by ``fetch_multiplier`` before being deduplicated by trace ID
    and truncated to the requested count.
    """

    def __init__(self, fetch_multiplier: int = 100):
        self.fetch_multiplier = fetch_multiplier

    def find_trace_ids(self, session: Session, criteria: TraceQueryCriteria) -> List[TraceID]:
        """
        Args:
            session: Open storage session
            criteria: TraceQueryCriteria instance

        Returns:
            Unique trace IDs, most recently started first, at most
            ``criteria.effective_num_traces()`` of them

        Raises:
            StorageError: If the query fails
        """
        limit = criteria.effective_num_traces()
        builder = build_trace_filter(criteria)
        log.debug("Trace ID query built", where=builder.where, params=builder.params)

        statement = (
            select(schema.Span.trace_id_low, schema.Span.trace_id_high)
            .join(schema.Operation, schema.Operation.id == schema.Span.operation_id)
            .join(schema.Service, schema.Service.id == schema.Span.service_id)
            .where(builder.clause(FILTER_COLUMNS))
            .order_by(schema.Span.start_time.desc(), schema.Span.id.desc())
            .limit(self.fetch_multiplier * limit)
        )

        unique: Dict[TraceID, None] = {}
        try:
            result = session.execute(statement)
            for low, high in result:
                unique.setdefault(
                    TraceID(low=schema.decode_id_half(low), high=schema.decode_id_half(high))
                )
                if len(unique) >= limit:
                    break
            result.close()
        except SQLAlchemyError as err:
            log.error("Trace ID query failed", criteria=criteria.to_dict(), error=str(err))
            raise StorageError('find_trace_ids', err, context=criteria.to_dict(),
                               partial=list(unique)) from err

        return list(unique)
