"""
Unit tests for trace_reader.filters.filter_builder module.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.sql.elements import True_

from trace_reader import TraceQueryCriteria
from trace_reader.filters import FilterBuilder, build_trace_filter
from trace_reader.processors.trace_id_finder import FILTER_COLUMNS


class TestBuildTraceFilter:
    """Tests for the build_trace_filter() function."""

    def test_empty_criteria_is_unconstrained(self):
        builder = build_trace_filter(TraceQueryCriteria())

        assert builder.where == ''
        assert builder.params == []
        assert isinstance(builder.clause(FILTER_COLUMNS), True_)

    def test_fragments_follow_evaluation_order(self):
        start_min = datetime(2024, 1, 1)
        start_max = datetime(2024, 1, 2)
        criteria = TraceQueryCriteria(
            duration_max=timedelta(milliseconds=100),
            service_name='frontend',
            start_time_max=start_max,
            operation_name='GET /',
            duration_min=timedelta(milliseconds=10),
            start_time_min=start_min,
        )

        builder = build_trace_filter(criteria)

        assert builder.where == (
            "service.service_name = ? AND operation.operation_name = ? AND "
            "span.start_time >= ? AND span.start_time <= ? AND "
            "span.duration >= ? AND span.duration <= ?"
        )
        assert builder.params == ['frontend', 'GET /', start_min, start_max, 10_000, 100_000]

    def test_duration_bounds_select_inclusive_range(self):
        builder = build_trace_filter(TraceQueryCriteria(
            duration_min=timedelta(milliseconds=1),
            duration_max=timedelta(seconds=1),
        ))

        assert builder.pairs() == [
            ('span.duration >= ?', 1_000),
            ('span.duration <= ?', 1_000_000),
        ]

    def test_zero_duration_is_ignored(self):
        builder = build_trace_filter(TraceQueryCriteria(duration_min=timedelta(0)))

        assert len(builder) == 0

    def test_empty_strings_are_ignored(self):
        builder = build_trace_filter(TraceQueryCriteria(service_name='', operation_name=''))

        assert builder.where == ''

    def test_tags_sorted_by_key(self):
        builder = build_trace_filter(TraceQueryCriteria(tags={'zone': 'b', 'host': 'a'}))

        assert builder.pairs() == [
            ("span.process_tags['host'] = ?", 'a'),
            ("span.process_tags['zone'] = ?", 'b'),
        ]

    def test_only_conjunctions_are_rendered(self):
        builder = build_trace_filter(TraceQueryCriteria(service_name='a', operation_name='b'))

        assert ' OR ' not in builder.where
        assert 'NOT' not in builder.where


class TestFilterBuilder:
    """Tests for the FilterBuilder class."""

    def test_values_are_bound_not_interpolated(self):
        hostile = "x' OR '1'='1"
        builder = FilterBuilder().and_where('service.service_name', '=', hostile)

        compiled = builder.clause(FILTER_COLUMNS).compile()

        assert hostile not in str(compiled)
        assert hostile in compiled.params.values()

    def test_clause_joins_with_and(self):
        builder = build_trace_filter(TraceQueryCriteria(service_name='a', operation_name='b'))

        rendered = str(builder.clause(FILTER_COLUMNS).compile())

        assert ' AND ' in rendered
        assert 'services.service_name' in rendered
        assert 'operations.operation_name' in rendered

    def test_rejects_unknown_operator(self):
        with pytest.raises(ValueError):
            FilterBuilder().and_where('span.duration', '<>', 1)

    def test_and_where_is_chainable(self):
        builder = FilterBuilder().and_where('span.duration', '>=', 1).and_where('span.duration', '<=', 2)

        assert builder.params == [1, 2]
