"""
Unit tests for trace_reader.web.result_builder module.
"""
from datetime import datetime, timedelta

from trace_reader import DependencyLink, TraceID
from trace_reader.core.types import Process, ProcessMapping, Span, Trace
from trace_reader.web import prepare_dependencies, prepare_trace


def make_span(span_id, service, start_ms, duration_ms):
    return Span(
        span_id=span_id,
        trace_id=TraceID(low=1),
        operation_name='op',
        service_name=service,
        process_id=f"{service}-1",
        start_time=datetime(2024, 1, 1) + timedelta(milliseconds=start_ms),
        duration=timedelta(milliseconds=duration_ms),
    )


class TestPrepareTrace:
    """Tests for the prepare_trace() function."""

    def test_summary_uses_wall_clock_span(self):
        trace = Trace(
            spans=[make_span(1, 'api', 0, 100), make_span(2, 'db', 20, 1500)],
            process_map=[ProcessMapping('api-1', Process('api', {'host': 'a'}))],
        )

        data = prepare_trace(trace)

        assert data['trace_id'] == '0000000000000001'
        assert data['summary']['span_count'] == 2
        assert data['summary']['services'] == ['api', 'db']
        assert data['summary']['wall_clock_duration_us'] == 1_520_000
        assert data['summary']['wall_clock_duration_formatted'] == '1.52 s'
        assert data['spans'][1]['duration_us'] == 1_500_000
        assert data['process_map'] == [{'process_id': 'api-1', 'service_name': 'api', 'tags': {'host': 'a'}}]

    def test_empty_trace(self):
        data = prepare_trace(Trace())

        assert data['trace_id'] is None
        assert data['summary'] == {'span_count': 0, 'services': []}


class TestPrepareDependencies:
    """Tests for the prepare_dependencies() function."""

    def test_sorted_by_call_count(self):
        links = [
            DependencyLink(1, 'a', 2, 'b', 3),
            DependencyLink(1, 'a', 3, 'c', 9),
        ]

        data = prepare_dependencies(links)

        assert [d['child'] for d in data] == ['c', 'b']
        assert data[0]['call_count'] == 9
