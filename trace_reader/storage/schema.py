"""
SQLAlchemy mapping of the span store schema.

The tables are owned and populated by the write path; the reader only
selects from them. Tests use ``Base.metadata.create_all`` to build a
throwaway copy.
"""

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

_SIGN_BIT = 1 << 63
_UINT64 = 1 << 64


def encode_id_half(value: int) -> int:
    """Map an unsigned 64-bit trace ID half onto a signed BIGINT."""
    return value - _UINT64 if value >= _SIGN_BIT else value


def decode_id_half(value: int) -> int:
    """Inverse of encode_id_half."""
    return value + _UINT64 if value < 0 else value


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, autoincrement=True)
    service_name = Column(String(255), unique=True, nullable=False)


class Operation(Base):
    __tablename__ = "operations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    operation_name = Column(String(255), unique=True, nullable=False)


class Span(Base):
    """
    One stored span.

    ``duration`` is in microseconds; ``trace_id_low``/``trace_id_high`` hold
    the unsigned halves re-encoded as signed 64-bit values.
    """

    __tablename__ = "spans"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    trace_id_low = Column(BigInteger, nullable=False)
    trace_id_high = Column(BigInteger, nullable=False, default=0)
    operation_id = Column(Integer, ForeignKey("operations.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    process_id = Column(String(255), nullable=False, default="")
    process_tags = Column(JSON, nullable=False, default=dict)
    start_time = Column(DateTime, nullable=False, index=True)
    duration = Column(BigInteger, nullable=False, default=0)

    operation = relationship("Operation", lazy="joined", innerjoin=True)
    service = relationship("Service", lazy="joined", innerjoin=True)
    span_refs = relationship(
        "SpanRef",
        foreign_keys="SpanRef.span_id",
        order_by="SpanRef.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_spans_trace_id", "trace_id_low", "trace_id_high"),
    )


class SpanRef(Base):
    """Causal edge from a referencing (parent) span to a referenced (child) span."""

    __tablename__ = "span_refs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    span_id = Column(BigInteger, ForeignKey("spans.id"), nullable=False, index=True)
    child_span_id = Column(BigInteger, ForeignKey("spans.id"), nullable=False, index=True)
    ref_type = Column(String(32), nullable=False, default="child-of")
