"""
Service and operation name listings.
"""

from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import StorageError
from ..storage import schema

log = structlog.get_logger()


class ServiceCatalog:
    """Lists the service and operation names known to the store."""

    @staticmethod
    def _collect(session: Session, statement, operation: str, context=None) -> List[str]:
        names: List[str] = []
        try:
            for name in session.execute(statement).scalars():
                if name:
                    names.append(name)
        except SQLAlchemyError as err:
            log.error("Name listing failed", operation=operation,
                      partial_count=len(names), error=str(err))
            raise StorageError(operation, err, context=context, partial=names) from err
        return names

    def list_services(self, session: Session) -> List[str]:
        """
        List service names in ascending order, skipping empty names.

        Raises:
            StorageError: With ``partial`` holding the names read before the failure
        """
        statement = select(schema.Service.service_name).order_by(schema.Service.service_name.asc())
        return self._collect(session, statement, 'get_services')

    def list_operations(self, session: Session, service_name: Optional[str] = None) -> List[str]:
        """
        List operation names in ascending order, skipping empty names.

        Args:
            session: Open storage session
            service_name: If given, only operations recorded on spans of this service

        Raises:
            StorageError: With ``partial`` holding the names read before the failure
        """
        name = schema.Operation.operation_name
        if service_name:
            statement = (
                select(name)
                .distinct()
                .join(schema.Span, schema.Span.operation_id == schema.Operation.id)
                .join(schema.Service, schema.Service.id == schema.Span.service_id)
                .where(schema.Service.service_name == service_name)
                .order_by(name.asc())
            )
        else:
            statement = select(name).order_by(name.asc())
        return self._collect(
            session, statement, 'get_operations', context={'service_name': service_name}
        )
