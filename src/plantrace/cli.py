"""
Command-line interface for the plan trace receiver.

Provides commands for:
- Polling PostgreSQL and exporting plan traces (run)
- Converting captured plan documents offline (convert)
- Validating the receiver configuration (validate)
"""

import argparse
import logging
import signal
import sys

from .config import DEFAULT_SERVICE_NAME, ReceiverConfig, default_config_path, load_config
from .errors import ConfigError, SourceUnavailableError
from .exporters.console_exporter import create_console_exporter
from .exporters.file_exporter import FilePlanSpanExporter
from .exporters.otlp_exporter import OTLP_PROTOCOLS, create_otlp_trace_exporter
from .generators.trace_generator import SpanTreeBuilder
from .receiver import PlanReceiver, TickSummary
from .sinks.exporter_sink import ExporterSink
from .sources.file_source import FilePlanSource
from .sources.postgres_source import PostgresPlanSource

_DEFAULT_ENDPOINT = "http://localhost:4318"
# Keep progress lines short so container logs don't truncate.
_MAX_TRACE_IDS_SHOWN = 10


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {number}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="plantrace",
        description="Export PostgreSQL execution plans as OpenTelemetry traces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Poll PostgreSQL and export to a local OTLP collector
  plantrace run --config resource/config/receiver.yaml

  # Single poll, spans written to a file
  plantrace run --once --output-file traces.jsonl

  # Convert captured plan documents (one JSON document per line)
  plantrace convert --input plans.jsonl --console

  # Check configuration
  plantrace validate --config receiver.yaml
        """,
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    def add_output_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--endpoint",
            type=str,
            default=_DEFAULT_ENDPOINT,
            help=f"OTLP endpoint (default: {_DEFAULT_ENDPOINT})",
        )
        sub.add_argument(
            "--protocol",
            type=str,
            default="http",
            choices=OTLP_PROTOCOLS,
            help="OTLP protocol (default: http)",
        )
        sub.add_argument(
            "--service-name",
            type=str,
            default=None,
            help=f"Service name on exported spans (default: config or {DEFAULT_SERVICE_NAME})",
        )
        output = sub.add_mutually_exclusive_group()
        output.add_argument(
            "--output-file",
            type=str,
            default=None,
            help="Write spans as JSONL to this file instead of OTLP",
        )
        output.add_argument(
            "--console",
            action="store_true",
            help="Print spans to stdout instead of OTLP",
        )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Poll PostgreSQL and export plan traces")
    run_parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Receiver config YAML (default: PLANTRACE_CONFIG or resource/config/receiver.yaml)",
    )
    run_parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll and exit",
    )
    add_output_options(run_parser)

    convert_parser = subparsers.add_parser(
        "convert", help="Convert plan documents from a JSONL file"
    )
    convert_parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="JSONL file with one plan document per line",
    )
    convert_parser.add_argument(
        "--max-attribute-length",
        type=_positive_int,
        default=None,
        help="Truncate string attribute values to this many characters",
    )
    add_output_options(convert_parser)

    validate_parser = subparsers.add_parser("validate", help="Validate receiver configuration")
    validate_parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Receiver config YAML",
    )

    return parser


def _create_sink(args: argparse.Namespace, service_name: str) -> ExporterSink:
    if getattr(args, "output_file", None):
        exporter = FilePlanSpanExporter(args.output_file)
        print(f"   Output: {args.output_file}")
    elif getattr(args, "console", False):
        exporter = create_console_exporter()
        print("   Output: console")
    else:
        exporter = create_otlp_trace_exporter(args.endpoint, protocol=args.protocol)
        print(f"   Output: OTLP {args.protocol} {args.endpoint}")
    return ExporterSink(exporter, service_name=service_name)


def _print_summary(summary: TickSummary) -> None:
    print(
        f"   Records: {summary.records}  Traces: {summary.batches}  "
        f"Spans: {summary.spans}  Failures: {summary.failed}"
    )
    for kind in sorted(summary.failures):
        print(f"      {kind}: {summary.failures[kind]}")
    ids = summary.trace_ids
    if ids:
        shown = ids[:_MAX_TRACE_IDS_SHOWN]
        label = (
            "Trace IDs:"
            if len(ids) <= _MAX_TRACE_IDS_SHOWN
            else f"Trace IDs (first {_MAX_TRACE_IDS_SHOWN} of {len(ids)}):"
        )
        print(label)
        for trace_id in shown:
            print(f"   {trace_id}")


def cmd_run(args: argparse.Namespace) -> int:
    """Poll PostgreSQL for plan documents."""
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Invalid configuration: {e}")
        return 1
    service_name = args.service_name or config.service_name

    print("Starting plan trace receiver...")
    print(f"   Pull interval: {config.pull_interval:g}s")
    try:
        source = PostgresPlanSource.connect(config)
    except SourceUnavailableError as e:
        print(f"Error: {e}")
        return 1
    sink = _create_sink(args, service_name)
    receiver = PlanReceiver(
        source,
        sink,
        builder=SpanTreeBuilder(max_attribute_length=config.attribute_value_max_length),
        pull_interval=config.pull_interval,
        host_name=config.host_name,
    )
    print()

    if args.once:
        try:
            summary = receiver.run_once()
        except SourceUnavailableError as e:
            print(f"Error: {e}")
            return 1
        finally:
            receiver.stop()
        _print_summary(summary)
        return 0

    def _handle_signal(signum, frame):
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, _handle_signal)
    receiver.start()
    try:
        receiver.wait()
    except KeyboardInterrupt:
        print("\nReceiver interrupted")
    finally:
        receiver.stop()
    if receiver.fatal_error is not None:
        print(f"Error: {receiver.fatal_error}")
        return 1
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    """Convert plan documents from a file in one pass."""
    print(f"Converting plan documents from {args.input}")
    sink = _create_sink(args, args.service_name or DEFAULT_SERVICE_NAME)
    receiver = PlanReceiver(
        FilePlanSource(args.input),
        sink,
        builder=SpanTreeBuilder(max_attribute_length=args.max_attribute_length),
    )
    try:
        summary = receiver.run_once()
    except SourceUnavailableError as e:
        print(f"Error: {e}")
        return 1
    finally:
        receiver.stop()
    print()
    _print_summary(summary)
    return 1 if summary.failed else 0


def _describe(config: ReceiverConfig) -> None:
    print(f"   Pull command: {config.pull_command}")
    print(f"   Init command: {config.init_command or '(none)'}")
    print(f"   Pull interval: {config.pull_interval:g}s")
    print(f"   Host name: {config.host_name}")
    print(f"   Service name: {config.service_name}")
    if config.attribute_value_max_length:
        print(f"   Attribute value max length: {config.attribute_value_max_length}")


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate configuration and show it."""
    path = args.config or default_config_path()
    try:
        config = load_config(path)
    except ConfigError as e:
        print(f"Validation failed: {e}")
        return 1
    print("Configuration loaded successfully")
    print(f"   Path: {path}")
    _describe(config)
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "run":
        sys.exit(cmd_run(args))
    elif args.command == "convert":
        sys.exit(cmd_convert(args))
    elif args.command == "validate":
        sys.exit(cmd_validate(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
