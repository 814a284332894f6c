#!/usr/bin/env python3
"""
Flask Web Application for the Trace Reader
Provides a JSON REST API over the relational span store: services, operations,
traces by ID or by query, and the service dependency graph.
"""

import json
import time

from flask import Flask, jsonify, request

from trace_reader import (
    InvalidQueryError,
    QueryCancelledError,
    ReaderConfig,
    RequestContext,
    TraceID,
    TraceQueryCriteria,
    TraceReader,
    TraceReaderError,
)
from trace_reader.formatters import from_epoch_micros, from_millis, parse_duration
from trace_reader.logging_setup import configure_logging
from trace_reader.web import prepare_dependencies, prepare_trace, prepare_traces

app = Flask(__name__)
app.config['READER_CONFIG'] = None
app.config['TRACE_READER'] = None

DEFAULT_LOOKBACK_MS = 24 * 60 * 60 * 1000


def get_reader() -> TraceReader:
    """Return the app's TraceReader, creating it from the environment on first use."""
    if app.config['TRACE_READER'] is None:
        config = app.config['READER_CONFIG'] or ReaderConfig.from_env()
        app.config['TRACE_READER'] = TraceReader(config)
    return app.config['TRACE_READER']


def request_context() -> RequestContext:
    return RequestContext.with_timeout(get_reader().config.query_timeout)


def _int_arg(name, default=None):
    value = request.args.get(name)
    if value in (None, ''):
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidQueryError(f"Query parameter '{name}' must be an integer") from None


def parse_criteria() -> TraceQueryCriteria:
    """
    Build TraceQueryCriteria from query string arguments:
      - 'service', 'operation': exact names
      - 'start', 'end': epoch microseconds
      - 'minDuration', 'maxDuration': durations such as '10ms' or '1.5s'
      - 'tags': JSON object of process tag key -> value
      - 'limit': number of traces (default 10)
    """
    start = _int_arg('start')
    end = _int_arg('end')
    min_duration = request.args.get('minDuration')
    max_duration = request.args.get('maxDuration')

    tags = {}
    if request.args.get('tags'):
        try:
            tags = json.loads(request.args['tags'])
        except json.JSONDecodeError:
            raise InvalidQueryError("Query parameter 'tags' must be a JSON object") from None
        if not isinstance(tags, dict):
            raise InvalidQueryError("Query parameter 'tags' must be a JSON object")
        tags = {str(k): str(v) for k, v in tags.items()}

    return TraceQueryCriteria(
        service_name=request.args.get('service') or None,
        operation_name=request.args.get('operation') or None,
        start_time_min=from_epoch_micros(start) if start is not None else None,
        start_time_max=from_epoch_micros(end) if end is not None else None,
        duration_min=parse_duration(min_duration) if min_duration else None,
        duration_max=parse_duration(max_duration) if max_duration else None,
        tags=tags,
        num_traces=_int_arg('limit', 0),
    )


@app.errorhandler(TraceReaderError)
def handle_reader_error(error):
    if isinstance(error, InvalidQueryError):
        status = 400
    elif isinstance(error, QueryCancelledError):
        status = 504
    else:
        status = 500
    return jsonify(error.to_dict()), status


@app.route('/api/services')
def services_api():
    """Returns: JSON {'data': [service names]}"""
    return jsonify({'data': get_reader().get_services(ctx=request_context())})


@app.route('/api/operations')
def operations_api():
    """
    Accepts: optional 'service' query parameter
    Returns: JSON {'data': [operation names]}
    """
    service = request.args.get('service') or None
    return jsonify({'data': get_reader().get_operations(service, ctx=request_context())})


@app.route('/api/traces/<trace_id>')
def trace_api(trace_id):
    """Returns: JSON {'data': [trace]} or 404 when no span has this ID"""
    trace = get_reader().get_trace(TraceID.from_hex(trace_id), ctx=request_context())
    if trace is None:
        return jsonify({'error': f'Trace {trace_id} not found'}), 404
    return jsonify({'data': [prepare_trace(trace)]})


@app.route('/api/traces')
def find_traces_api():
    """Returns: JSON {'data': [traces]} matching the query string criteria"""
    criteria = parse_criteria()
    traces = get_reader().find_traces(criteria, ctx=request_context())
    return jsonify({'data': prepare_traces(traces)})


@app.route('/api/dependencies')
def dependencies_api():
    """
    Accepts:
      - 'endTs': window end in epoch milliseconds (default: now)
      - 'lookback': window length in milliseconds (default: 24h)
    Returns: JSON {'data': [dependency links]}
    """
    end_ms = _int_arg('endTs', int(time.time() * 1000))
    lookback_ms = _int_arg('lookback', DEFAULT_LOOKBACK_MS)
    links = get_reader().get_dependencies(
        from_epoch_micros(end_ms * 1000),
        from_millis(lookback_ms),
        ctx=request_context(),
    )
    return jsonify({'data': prepare_dependencies(links)})


if __name__ == '__main__':
    configure_logging()
    app.run(debug=True, host='0.0.0.0', port=5001)
