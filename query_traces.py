#!/usr/bin/env python3
"""
Trace Reader - command-line query tool
"""

import json
import sys
from datetime import datetime, timedelta, timezone

from trace_reader import RequestContext, TraceID, TraceQueryCriteria, TraceReader, TraceReaderError
from trace_reader.core.types import ReaderConfig
from trace_reader.formatters import parse_duration
from trace_reader.logging_setup import configure_logging
from trace_reader.web import prepare_dependencies, prepare_trace, prepare_traces


def parse_tag(value):
    key, sep, tag_value = value.partition('=')
    if not sep or not key:
        raise ValueError(f"Tag must look like key=value, got {value!r}")
    return key, tag_value


def print_progress(completed, total):
    print(f"\rAssembled {completed}/{total} traces", end='' if completed < total else '\n',
          file=sys.stderr, flush=True)


def run(args, reader):
    ctx = RequestContext.with_timeout(reader.config.query_timeout)

    if args.command == 'services':
        return reader.get_services(ctx=ctx)
    if args.command == 'operations':
        return reader.get_operations(args.service, ctx=ctx)
    if args.command == 'trace':
        trace = reader.get_trace(TraceID.from_hex(args.trace_id), ctx=ctx)
        return prepare_trace(trace) if trace else None
    if args.command == 'find':
        criteria = TraceQueryCriteria(
            service_name=args.service,
            operation_name=args.operation,
            duration_min=parse_duration(args.min_duration) if args.min_duration else None,
            duration_max=parse_duration(args.max_duration) if args.max_duration else None,
            tags=dict(parse_tag(tag) for tag in args.tag),
            num_traces=args.limit,
        )
        progress = print_progress if args.progress else None
        return prepare_traces(reader.find_traces(criteria, ctx=ctx, progress_callback=progress))
    if args.command == 'dependencies':
        links = reader.get_dependencies(
            datetime.now(timezone.utc).replace(tzinfo=None),
            timedelta(hours=args.lookback_hours),
            ctx=ctx,
        )
        return prepare_dependencies(links)
    raise ValueError(f"Unknown command {args.command!r}")


def main():
    import argparse
    parser = argparse.ArgumentParser(
        description='Query traces and service dependencies from a relational span store.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python query_traces.py services
  python query_traces.py operations --service frontend
  python query_traces.py trace 00000000000000010000000000000002
  python query_traces.py find --service frontend --min-duration 10ms --limit 20
  python query_traces.py dependencies --lookback-hours 6

The database URL is read from TRACE_READER_DATABASE_URL unless --database-url is given.
        """
    )
    parser.add_argument('--database-url', help='SQLAlchemy URL of the span store')
    parser.add_argument('--log-level', default='WARNING', help='Log level for stderr output')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('services', help='List service names')

    operations = subparsers.add_parser('operations', help='List operation names')
    operations.add_argument('--service', help='Only operations recorded for this service')

    trace = subparsers.add_parser('trace', help='Load one trace by hex ID')
    trace.add_argument('trace_id')

    find = subparsers.add_parser('find', help='Find traces matching criteria')
    find.add_argument('--service')
    find.add_argument('--operation')
    find.add_argument('--min-duration', help='e.g. 250us, 10ms, 1.5s')
    find.add_argument('--max-duration')
    find.add_argument('--tag', action='append', default=[], help='Process tag key=value (repeatable)')
    find.add_argument('--limit', type=int, default=10)
    find.add_argument('--progress', action='store_true', help='Report assembly progress on stderr')

    dependencies = subparsers.add_parser('dependencies', help='Service dependency links')
    dependencies.add_argument('--lookback-hours', type=float, default=24.0)

    args = parser.parse_args()
    configure_logging(args.log_level)

    config = ReaderConfig.from_env()
    if args.database_url:
        config.database_url = args.database_url

    try:
        result = run(args, TraceReader(config))
    except (TraceReaderError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if result is None:
        print("Error: trace not found", file=sys.stderr)
        sys.exit(1)
    json.dump(result, sys.stdout, indent=2)
    print()


if __name__ == "__main__":
    main()
