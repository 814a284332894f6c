"""
Service dependency aggregation from span reference edges.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from ..core.errors import InvalidQueryError, StorageError
from ..core.types import DependencyLink
from ..storage import schema

log = structlog.get_logger()


class DependencyAggregator:
    """Counts parent -> child service calls over a time window."""

    def get_dependencies(self, session: Session, end_ts: datetime,
                         lookback: timedelta) -> List[DependencyLink]:
        """
        Aggregate reference edges whose parent span started in
        [end_ts - lookback, end_ts].

        The parent side resolves span_refs.span_id and the child side
        span_refs.child_span_id, each through its own span and service alias.

        Args:
            session: Open storage session
            end_ts: End of the window
            lookback: Window length

        Returns:
            One DependencyLink per (parent service, child service) pair,
            ordered by parent then child name

        Raises:
            InvalidQueryError: If lookback is negative or too long
            StorageError: If the query fails
        """
        window = {'end_ts': end_ts.isoformat(), 'lookback_s': lookback.total_seconds()}
        if lookback < timedelta(0):
            raise InvalidQueryError("lookback must not be negative",
                                    operation='get_dependencies', context=window)
        try:
            start_ts = end_ts - lookback
        except OverflowError:
            raise InvalidQueryError("lookback reaches before the earliest representable time",
                                    operation='get_dependencies', context=window) from None
        context = {'start_ts': start_ts.isoformat(), 'end_ts': end_ts.isoformat()}

        parent_span = aliased(schema.Span, name='parent_span')
        child_span = aliased(schema.Span, name='child_span')
        parent_service = aliased(schema.Service, name='parent_service')
        child_service = aliased(schema.Service, name='child_service')

        statement = (
            select(
                parent_service.id,
                parent_service.service_name,
                child_service.id,
                child_service.service_name,
            )
            .select_from(schema.SpanRef)
            .join(parent_span, parent_span.id == schema.SpanRef.span_id)
            .join(parent_service, parent_service.id == parent_span.service_id)
            .join(child_span, child_span.id == schema.SpanRef.child_span_id)
            .join(child_service, child_service.id == child_span.service_id)
            .where(parent_span.start_time >= start_ts, parent_span.start_time <= end_ts)
            .order_by(parent_service.service_name, child_service.service_name, schema.SpanRef.id)
        )

        counts: Dict[Tuple[int, str, int, str], int] = {}
        try:
            for edge in session.execute(statement):
                key = tuple(edge)
                counts[key] = counts.get(key, 0) + 1
        except SQLAlchemyError as err:
            log.error("Dependency query failed", error=str(err), **context)
            raise StorageError('get_dependencies', err, context=context) from err

        return [
            DependencyLink(
                parent_id=parent_id,
                parent=parent_name,
                child_id=child_id,
                child=child_name,
                call_count=count,
            )
            for (parent_id, parent_name, child_id, child_name), count in counts.items()
        ]
