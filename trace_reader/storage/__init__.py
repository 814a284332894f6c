"""Relational span store access."""

from .database import create_reader_engine, create_session_factory
from .schema import Base, Operation, Service, Span, SpanRef, decode_id_half, encode_id_half

__all__ = [
    'Base',
    'Operation',
    'Service',
    'Span',
    'SpanRef',
    'create_reader_engine',
    'create_session_factory',
    'decode_id_half',
    'encode_id_half',
]
