"""
Pytest configuration and shared fixtures for trace reader tests.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine

from trace_reader import ReaderConfig, TraceID, TraceReader
from trace_reader.storage import Base, Operation, Service, Span, SpanRef, encode_id_half
from trace_reader.storage import create_session_factory

T0 = datetime(2024, 1, 1, 12, 0, 0)


class SpanStoreSeeder:
    """Writes fixture rows the way the ingestion side would."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._services = {}
        self._operations = {}

    def service(self, name):
        if name not in self._services:
            self._services[name] = self._add(Service(service_name=name))
        return self._services[name]

    def operation(self, name):
        if name not in self._operations:
            self._operations[name] = self._add(Operation(operation_name=name))
        return self._operations[name]

    def span(self, trace_id, service, operation, start_time, duration_ms=10,
             process_id=None, process_tags=None):
        """Insert a span and return its storage id."""
        return self._add(Span(
            trace_id_low=encode_id_half(trace_id.low),
            trace_id_high=encode_id_half(trace_id.high),
            service_id=self.service(service),
            operation_id=self.operation(operation),
            process_id=process_id if process_id is not None else f"{service}-process",
            process_tags=process_tags or {},
            start_time=start_time,
            duration=int(duration_ms * 1000),
        ))

    def ref(self, parent_span_id, child_span_id, ref_type='child-of'):
        return self._add(SpanRef(span_id=parent_span_id, child_span_id=child_span_id,
                                 ref_type=ref_type))

    def _add(self, row):
        with self.session_factory() as session:
            session.add(row)
            session.commit()
            return row.id


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite engine so worker threads get their own connections."""
    db_engine = create_engine(
        f"sqlite:///{tmp_path / 'spans.db'}",
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def reader_config(tmp_path):
    return ReaderConfig(database_url=f"sqlite:///{tmp_path / 'spans.db'}", max_workers=4)


@pytest.fixture
def session_factory(engine, reader_config):
    return create_session_factory(reader_config, engine=engine)


@pytest.fixture
def seeder(session_factory):
    return SpanStoreSeeder(session_factory)


@pytest.fixture
def reader(reader_config, session_factory):
    return TraceReader(reader_config, session_factory=session_factory)


@pytest.fixture
def round_trip_trace(seeder):
    """
    frontend "GET /" at T0 calling backend "query" at T0+10ms, linked by one
    reference edge.
    """
    trace_id = TraceID(low=0xA1, high=0x1)
    frontend_span = seeder.span(trace_id, 'frontend', 'GET /', T0, duration_ms=50,
                                process_id='p-frontend', process_tags={'hostname': 'web-1'})
    backend_span = seeder.span(trace_id, 'backend', 'query', T0 + timedelta(milliseconds=10),
                               duration_ms=20, process_id='p-backend',
                               process_tags={'hostname': 'db-1'})
    seeder.ref(frontend_span, backend_span)
    return trace_id, frontend_span, backend_span
