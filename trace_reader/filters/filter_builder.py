"""
Conjunctive predicate builder for trace queries.
"""

import operator
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import and_, true
from sqlalchemy.sql.elements import ColumnElement

from ..core.types import TraceQueryCriteria

SERVICE_NAME = 'service.service_name'
OPERATION_NAME = 'operation.operation_name'
START_TIME = 'span.start_time'
DURATION = 'span.duration'
PROCESS_TAGS = 'span.process_tags'

OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    '=': operator.eq,
    '>=': operator.ge,
    '<=': operator.le,
}


@dataclass(frozen=True)
class Predicate:
    """A single (column, operator, value) comparison; ``key`` selects a JSON member."""
    column: str
    operator: str
    value: Any
    key: Optional[str] = None

    def render(self) -> str:
        if self.key is not None:
            return f"{self.column}[{self.key!r}] {self.operator} ?"
        return f"{self.column} {self.operator} ?"


class FilterBuilder:
    """
    Accumulates AND-ed predicates in evaluation order.

    Values are never interpolated into query text: ``where`` uses positional
    ``?`` placeholders matched by ``params``, and ``clause()`` renders a
    SQLAlchemy expression with bound parameters.
    """

    def __init__(self):
        self.predicates: List[Predicate] = []

    def and_where(self, column: str, op: str, value: Any, key: Optional[str] = None) -> 'FilterBuilder':
        if op not in OPERATORS:
            raise ValueError(f"Unsupported operator '{op}'. Must be one of: {list(OPERATORS)}")
        self.predicates.append(Predicate(column, op, value, key))
        return self

    def __len__(self) -> int:
        return len(self.predicates)

    @property
    def where(self) -> str:
        return ' AND '.join(p.render() for p in self.predicates)

    @property
    def params(self) -> List[Any]:
        return [p.value for p in self.predicates]

    def pairs(self) -> List[Tuple[str, Any]]:
        return [(p.render(), p.value) for p in self.predicates]

    def clause(self, columns: Mapping[str, Any]) -> ColumnElement:
        """
        Render the predicates against concrete SQLAlchemy columns.

        Args:
            columns: Mapping of logical column name -> SQLAlchemy column

        Returns:
            Boolean clause; ``true()`` when no predicate was added
        """
        if not self.predicates:
            return true()

        expressions = []
        for predicate in self.predicates:
            column = columns[predicate.column]
            if predicate.key is not None:
                column = column[predicate.key].as_string()
            expressions.append(OPERATORS[predicate.operator](column, predicate.value))
        return and_(*expressions)


def _microseconds(value: timedelta) -> int:
    return value // timedelta(microseconds=1)


def build_trace_filter(criteria: TraceQueryCriteria) -> FilterBuilder:
    """
    Translate trace query criteria into a FilterBuilder.

    Fragments are emitted only for present, non-zero criteria, in the order
    service, operation, start time, duration, tags. Durations select spans
    within [duration_min, duration_max] and are bound in microseconds.

    Args:
        criteria: TraceQueryCriteria instance

    Returns:
        FilterBuilder holding the conjunctive predicate
    """
    builder = FilterBuilder()

    if criteria.service_name:
        builder.and_where(SERVICE_NAME, '=', criteria.service_name)
    if criteria.operation_name:
        builder.and_where(OPERATION_NAME, '=', criteria.operation_name)
    if criteria.start_time_min:
        builder.and_where(START_TIME, '>=', criteria.start_time_min)
    if criteria.start_time_max:
        builder.and_where(START_TIME, '<=', criteria.start_time_max)
    if criteria.duration_min and criteria.duration_min > timedelta(0):
        builder.and_where(DURATION, '>=', _microseconds(criteria.duration_min))
    if criteria.duration_max and criteria.duration_max > timedelta(0):
        builder.and_where(DURATION, '<=', _microseconds(criteria.duration_max))
    for key in sorted(criteria.tags or {}):
        builder.and_where(PROCESS_TAGS, '=', criteria.tags[key], key=key)

    return builder
