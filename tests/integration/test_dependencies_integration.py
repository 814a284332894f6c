"""
Integration tests for service dependency aggregation.
"""
from datetime import timedelta

import pytest

from trace_reader import InvalidQueryError, TraceID

from conftest import T0

END = T0 + timedelta(minutes=5)
LOOKBACK = timedelta(hours=1)


@pytest.fixture
def edge_spans(seeder):
    """S1 in service "a" and S2 in service "b", same trace, no edges yet."""
    trace_id = TraceID(low=1)
    s1 = seeder.span(trace_id, 'a', 'call', T0)
    s2 = seeder.span(trace_id, 'b', 'handle', T0 + timedelta(milliseconds=5))
    return s1, s2


class TestDependencies:

    def test_single_edge(self, reader, seeder, edge_spans):
        s1, s2 = edge_spans
        seeder.ref(s1, s2)

        links = reader.get_dependencies(END, LOOKBACK)

        assert [(link.parent, link.child, link.call_count) for link in links] == [('a', 'b', 1)]

    def test_second_edge_increments_count(self, reader, seeder, edge_spans):
        s1, s2 = edge_spans
        seeder.ref(s1, s2)
        seeder.ref(s1, s2)

        links = reader.get_dependencies(END, LOOKBACK)

        assert len(links) == 1
        assert links[0].call_count == 2

    def test_parent_and_child_resolved_independently(self, reader, seeder, edge_spans):
        s1, s2 = edge_spans
        seeder.ref(s1, s2)

        link = reader.get_dependencies(END, LOOKBACK)[0]

        assert link.parent != link.child
        assert link.parent_id == seeder.service('a')
        assert link.child_id == seeder.service('b')

    def test_edge_outside_window_ignored(self, reader, seeder, edge_spans):
        s1, s2 = edge_spans
        seeder.ref(s1, s2)
        old_trace = TraceID(low=2)
        old_parent = seeder.span(old_trace, 'a', 'call', T0 - timedelta(hours=3))
        old_child = seeder.span(old_trace, 'b', 'handle', T0 - timedelta(hours=3))
        seeder.ref(old_parent, old_child)

        links = reader.get_dependencies(END, LOOKBACK)

        assert [(link.parent, link.child, link.call_count) for link in links] == [('a', 'b', 1)]

    def test_empty_window(self, reader, seeder, edge_spans):
        s1, s2 = edge_spans
        seeder.ref(s1, s2)

        assert reader.get_dependencies(T0 - timedelta(days=1), LOOKBACK) == []

    def test_no_edges(self, reader, edge_spans):
        assert reader.get_dependencies(END, LOOKBACK) == []

    def test_multiple_pairs_ordered_by_name(self, reader, seeder, edge_spans):
        s1, s2 = edge_spans
        s3 = seeder.span(TraceID(low=1), 'c', 'store', T0 + timedelta(milliseconds=8))
        seeder.ref(s2, s3)
        seeder.ref(s1, s3)
        seeder.ref(s1, s2)

        links = reader.get_dependencies(END, LOOKBACK)

        assert [(link.parent, link.child) for link in links] == [('a', 'b'), ('a', 'c'), ('b', 'c')]
        assert all(link.call_count == 1 for link in links)

    def test_negative_lookback_rejected(self, reader):
        with pytest.raises(InvalidQueryError):
            reader.get_dependencies(END, timedelta(hours=-1))

    def test_lookback_before_earliest_time_rejected(self, reader):
        with pytest.raises(InvalidQueryError):
            reader.get_dependencies(END, timedelta(days=999_999_999))
