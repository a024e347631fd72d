"""flowtally command-line entry point.

Counts flow log records per tag and per port/protocol combination.

Usage:
    flowtally --flow-log flow_log.txt --protocols protocol-numbers.csv \\
        --lookup-table lookup_table.csv --output output.txt

Paths default to the FLOWTALLY_* environment variables (or .env file),
see flowtally.common.config.
"""

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from pydantic import ValidationError

from flowtally import __version__
from flowtally.aggregation.orchestrator import CountingOrchestrator, ResultSet
from flowtally.common.config import LoggingSettings, Settings, get_settings
from flowtally.common.exceptions import (
    ConfigurationError,
    FlowTallyError,
    MissingFileError,
    MissingMandatoryFileError,
    OutputWriteError,
)
from flowtally.common.logging import bind_context, clear_context, get_logger, setup_logging
from flowtally.common.metrics import set_app_info, write_metrics
from flowtally.enrichment.protocol import ProtocolResolver
from flowtally.enrichment.tags import TagLookup
from flowtally.ingestion.processor import FlowLogProcessor, ProcessingStats
from flowtally.ingestion.reader import FlowLogReader
from flowtally.reporting.errors import ErrorSink
from flowtally.reporting.writer import ResultWriter

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowtally",
        description="Count flow log records per tag and per port/protocol combination.",
    )
    parser.add_argument("--flow-log", type=Path, help="Flow log file to process.")
    parser.add_argument(
        "--protocols",
        type=Path,
        help="CSV file mapping protocol numbers to names (IANA protocol-numbers.csv).",
    )
    lookup = parser.add_mutually_exclusive_group()
    lookup.add_argument(
        "--lookup-table",
        type=Path,
        help="CSV file mapping dstport,protocol to a tag.",
    )
    lookup.add_argument(
        "--no-lookup-table",
        action="store_true",
        help="Disable tag counting.",
    )
    parser.add_argument("--output", type=Path, help="Report file to write.")
    parser.add_argument("--error-log", type=Path, help="File that skipped lines are appended to.")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level for diagnostic output.",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        help="Diagnostic output format.",
    )
    parser.add_argument(
        "--metrics-textfile",
        type=Path,
        help="Write Prometheus metrics to this file after the run.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return a copy of settings with command-line values applied."""
    paths: dict[str, object] = {}
    if args.flow_log is not None:
        paths["flow_log_path"] = args.flow_log
    if args.protocols is not None:
        paths["protocol_numbers_path"] = args.protocols
    if args.lookup_table is not None:
        paths["lookup_table_path"] = args.lookup_table
    if args.no_lookup_table:
        paths["lookup_table_path"] = None
    if args.output is not None:
        paths["output_path"] = args.output
    if args.error_log is not None:
        paths["error_log_path"] = args.error_log

    log: dict[str, object] = {}
    if args.log_level is not None:
        log["level"] = args.log_level
    if args.log_format is not None:
        log["format"] = args.log_format

    update: dict[str, object] = {
        "paths": settings.paths.model_copy(update=paths),
        "logging": settings.logging.model_copy(update=log),
    }
    if args.metrics_textfile is not None:
        update["metrics"] = settings.metrics.model_copy(
            update={"textfile_path": args.metrics_textfile}
        )
    return settings.model_copy(update=update)


def load_settings(args: argparse.Namespace) -> Settings:
    """Read settings from the environment and apply command-line values.

    Raises:
        ConfigurationError: If a setting has an invalid value.
    """
    try:
        return apply_overrides(get_settings(), args)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError(details={"errors": problems}, cause=e) from e


def load_lookup(settings: Settings, error_sink: ErrorSink) -> TagLookup | None:
    """Load the lookup table, or None to run without tagging."""
    if not settings.tagging_enabled:
        logger.info("No lookup table configured, tag counting disabled")
        return None
    try:
        return TagLookup.from_csv(settings.paths.lookup_table_path)
    except MissingFileError as e:
        logger.warning("Lookup table unavailable, tag counting disabled", **e.to_dict())
        error_sink.report(
            "Missing Lookup table, can calculate counts of port protocol combinations"
        )
        return None


def run(settings: Settings) -> tuple[ResultSet, ProcessingStats]:
    """Run one counting pass and write the report.

    Raises:
        FlowTallyError: On any fatal condition. Nothing is written to the
            report file in that case.
    """
    paths = settings.paths
    bind_context(flow_log=str(paths.flow_log_path))

    with ErrorSink(paths.error_log_path) as error_sink:
        logger.info("Loading protocol numbers and name information")
        resolver = ProtocolResolver.from_csv(paths.protocol_numbers_path)

        lookup = load_lookup(settings, error_sink)
        orchestrator = CountingOrchestrator(resolver, lookup)
        set_app_info(settings.app_version, tagging=orchestrator.tagging_enabled)
        processor = FlowLogProcessor(orchestrator, error_sink)

        try:
            with FlowLogReader(paths.flow_log_path) as reader:
                stats = processor.process(reader)
        except MissingMandatoryFileError as e:
            error_sink.report(e.message)
            raise

        result = orchestrator.finalize()
        try:
            ResultWriter(paths.output_path).write(result)
        except OutputWriteError:
            error_sink.report("Not able to add data to output file")
            raise

    if settings.metrics.textfile_path is not None:
        try:
            write_metrics(settings.metrics.textfile_path)
        except OSError as e:
            # The report is already written, metrics are best effort
            logger.warning(
                "Cannot write metrics textfile",
                path=str(settings.metrics.textfile_path),
                error=str(e),
            )

    return result, stats


def main(argv: list[str] | None = None) -> int:
    """Main entry point, returns the process exit code."""
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args)
    except ConfigurationError as e:
        # Environment logging settings may be the invalid ones
        setup_logging(LoggingSettings.model_construct())
        logger.error("Invalid configuration", **e.to_dict())
        return 1

    setup_logging(settings.logging)

    logger.info("Starting flowtally", version=settings.app_version)
    try:
        _, stats = run(settings)
    except FlowTallyError as e:
        logger.error("Run aborted", **e.to_dict())
        return 1
    finally:
        clear_context()

    logger.info("Run complete", output=str(settings.paths.output_path), **stats.to_dict())
    return 0


def cli() -> NoReturn:
    """Console script wrapper."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    cli()
