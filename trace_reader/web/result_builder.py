"""
Result builder for HTTP API and CLI output.
"""

from datetime import timedelta
from typing import Any, Dict, List

from ..core.types import DependencyLink, Trace
from ..formatters import format_duration, to_epoch_micros


def prepare_trace(trace: Trace) -> Dict[str, Any]:
    """
    Convert a Trace to a JSON-ready dictionary with a wall-clock summary.

    Args:
        trace: Assembled Trace

    Returns:
        Dictionary with trace_id, spans, process map and summary
    """
    data = trace.to_dict()
    for span_dict, span in zip(data['spans'], trace.spans):
        span_dict['start_time_us'] = to_epoch_micros(span.start_time)
        span_dict['duration_formatted'] = format_duration(span.duration)

    summary = {
        'span_count': len(trace.spans),
        'services': sorted({span.service_name for span in trace.spans}),
    }
    if trace.spans:
        min_start = min(span.start_time for span in trace.spans)
        max_end = max(span.start_time + span.duration for span in trace.spans)
        wall_clock = max_end - min_start
        summary.update({
            'start_time_us': to_epoch_micros(min_start),
            'wall_clock_duration_us': wall_clock // timedelta(microseconds=1),
            'wall_clock_duration_formatted': format_duration(wall_clock),
        })
    data['summary'] = summary
    return data


def prepare_traces(traces: List[Trace]) -> List[Dict[str, Any]]:
    return [prepare_trace(trace) for trace in traces]


def prepare_dependencies(links: List[DependencyLink]) -> List[Dict[str, Any]]:
    """Dependency links sorted by call count, busiest edge first."""
    return sorted((link.to_dict() for link in links), key=lambda x: -x['call_count'])
