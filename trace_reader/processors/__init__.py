"""Query processors for the trace read path."""

from .service_catalog import ServiceCatalog
from .trace_id_finder import TraceIDFinder
from .trace_assembler import TraceAssembler
from .dependency_aggregator import DependencyAggregator
from .parallel_fetcher import ParallelTraceFetcher

__all__ = [
    "ServiceCatalog",
    "TraceIDFinder",
    "TraceAssembler",
    "DependencyAggregator",
    "ParallelTraceFetcher",
]
