"""Web output helpers."""

from .result_builder import prepare_dependencies, prepare_trace, prepare_traces

__all__ = ["prepare_trace", "prepare_traces", "prepare_dependencies"]
