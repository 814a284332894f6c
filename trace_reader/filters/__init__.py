"""Query filter construction."""

from .filter_builder import FilterBuilder, Predicate, build_trace_filter

__all__ = ["FilterBuilder", "Predicate", "build_trace_filter"]
