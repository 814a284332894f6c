"""
Engine and session factory for the span store.

Usage:
    from trace_reader.storage import create_session_factory

    session_factory = create_session_factory(ReaderConfig.from_env())
    with session_factory() as session:
        ...
"""

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ..core.types import ReaderConfig

log = structlog.get_logger()


def create_reader_engine(config: ReaderConfig) -> Engine:
    """
    Create a SQLAlchemy engine for the configured database.

    SQLite connections are opened with ``check_same_thread=False`` so that the
    parallel trace fetcher can check them out from worker threads.
    """
    url = make_url(config.database_url)
    kwargs = {'echo': config.echo_sql, 'pool_pre_ping': True}
    if url.get_backend_name() == 'sqlite':
        kwargs['connect_args'] = {'check_same_thread': False}
    else:
        # one connection per concurrent trace fetch plus the coordinating request
        kwargs['pool_size'] = config.max_workers + 1
        kwargs['max_overflow'] = config.max_workers

    engine = create_engine(url, **kwargs)
    log.info("Span store engine created",
             backend=url.get_backend_name(), database=url.database)
    return engine


def create_session_factory(config: ReaderConfig, engine: Engine = None) -> sessionmaker:
    """
    Build a session factory bound to ``engine`` (created from ``config`` when omitted).

    Sessions are read-only in practice; ``expire_on_commit`` is off so that
    rows stay usable after the session closes.
    """
    if engine is None:
        engine = create_reader_engine(config)
    return sessionmaker(engine, class_=Session, expire_on_commit=False)
