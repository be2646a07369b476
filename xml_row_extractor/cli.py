"""
Command-line interface for the XML Row Extractor.

Examples:
    xml_row_extractor data.xml --rows //item --column name --column age
    xml_row_extractor data.xml --rows //item --column name --name item_name --output items.csv
    xml_row_extractor --job config/samples/catalog_job.json --log-level INFO
    cat data.xml | xml_row_extractor - --rows //item --column @id --table items
"""

import argparse
import logging
import sys

from typing import List, Optional

from .api import extract_file
from .config.config_manager import get_config_manager
from .config.extraction_defaults import ExtractionDefaults
from .exceptions import ConfigurationError, ValidationError, XMLExtractionError
from .models import ExtractionJob
from .sinks import CsvRowSink
from .utils import NamespaceUtils


EXIT_OK = 0
EXIT_EXTRACTION_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xml_row_extractor",
        description="Extract rows of text values from an XML document using XPath selectors",
    )
    parser.add_argument("source", nargs="?", help="XML file to read ('-' for stdin)")
    parser.add_argument("--job", help="JSON or YAML extraction job file")
    parser.add_argument("--rows", dest="row_selector", help="XPath selecting the nodes that become rows")
    parser.add_argument("--column", dest="columns", action="append", default=[],
                        help="XPath evaluated relative to each row node (repeatable, in output order)")
    parser.add_argument("--name", dest="names", action="append", default=[],
                        help="Output column name (repeatable, one per --column)")
    parser.add_argument("--namespace", dest="namespaces", action="append", default=[],
                        help="Namespace mapping as prefix=uri (repeatable)")

    output = parser.add_mutually_exclusive_group()
    output.add_argument("--output", help="CSV output file ('-' for stdout, the default)")
    output.add_argument("--table", help="Database table receiving the rows (see XML_ROW_EXTRACTOR_* variables)")

    parser.add_argument("--null-marker", default=None,
                        help="Text written to CSV for absent cells (default: empty field)")
    parser.add_argument("--strip-whitespace", action="store_true", default=None,
                        help="Strip leading and trailing whitespace from cell text")
    parser.add_argument("--empty-as-absent", action="store_true", default=None,
                        help="Treat empty cell text as absent")
    parser.add_argument("--allow-scalar-results", action="store_true", default=None,
                        help="Render string(), count() and other scalar column results as text")
    parser.add_argument("--notice-mode", choices=["per_cell", "summary"], default=None,
                        help="Report cell problems individually or as one summary")
    parser.add_argument("--huge-tree", action="store_true", default=None,
                        help="Allow very deep or very large documents")
    parser.add_argument("--batch-size", type=int, default=None,
                        help=f"Rows per database batch (default: {ExtractionDefaults.BATCH_SIZE})")
    parser.add_argument("--log-level", default=None,
                        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
                        help=f"Logging level (default: {ExtractionDefaults.LOG_LEVEL})")
    return parser


def configure_logging(level: str) -> None:
    """Set up root logging without reconfiguring it if a handler already exists."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))


def resolve_job(args: argparse.Namespace, config_manager) -> ExtractionJob:
    """
    Merge the optional job file with command line arguments.

    Command line values take precedence over the job file.

    Raises:
        ConfigurationError: If the merged job is incomplete or invalid
    """
    job = config_manager.load_job(args.job) if args.job else None

    try:
        namespaces = NamespaceUtils.parse_mapping(args.namespaces)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    column_selectors = args.columns or (job.column_selectors if job else [])
    if args.names:
        column_names = args.names
    elif args.columns:
        column_names = None
    else:
        column_names = job.column_names if job else None

    output_path = args.output
    target_table = args.table
    if output_path is None and target_table is None and job is not None:
        output_path, target_table = job.output_path, job.target_table

    null_marker = args.null_marker
    if null_marker is None:
        null_marker = job.null_marker if job else ExtractionDefaults.NULL_MARKER

    try:
        return ExtractionJob(
            row_selector=args.row_selector or (job.row_selector if job else ''),
            column_selectors=column_selectors,
            column_names=column_names,
            source_path=args.source or (job.source_path if job else None),
            namespaces=namespaces or (job.namespaces if job else None),
            output_path=output_path,
            target_table=target_table,
            null_marker=null_marker,
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid extraction request: {e}") from e


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI application.

    Args:
        args: Optional command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for a failed extraction, 2 for usage errors)
    """
    if args is None:
        args = sys.argv[1:]

    parser = build_parser()
    try:
        options = parser.parse_args(args)
    except SystemExit as e:
        return EXIT_OK if e.code == 0 else EXIT_USAGE

    try:
        config_manager = get_config_manager()
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_USAGE

    configure_logging(options.log_level or config_manager.extraction_params.log_level)
    logger = logging.getLogger(__name__)
    if logger.isEnabledFor(logging.DEBUG):
        ExtractionDefaults.log_summary(logger)

    try:
        job = resolve_job(options, config_manager)
        if not job.source_path:
            raise ConfigurationError("No XML source given (positional SOURCE or 'source' in the job file)")
        config = config_manager.get_extraction_config(
            namespaces=job.namespaces,
            strip_whitespace=options.strip_whitespace,
            empty_as_absent=options.empty_as_absent,
            allow_scalar_results=options.allow_scalar_results,
            cell_notice_mode=options.notice_mode,
            huge_tree=options.huge_tree,
        )
        if options.batch_size is not None and options.batch_size <= 0:
            raise ConfigurationError("--batch-size must be positive")
    except (ConfigurationError, ValidationError) as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        if job.target_table:
            # Imported here so CSV extraction works without an ODBC driver manager
            from .sinks.database_sink import DatabaseRowSink
            sink = DatabaseRowSink(job.target_table, batch_size=options.batch_size)
        else:
            sink = CsvRowSink(job.output_path or '-', null_marker=job.null_marker)

        with extract_file(job.source_path, job.row_selector, job.column_selectors,
                          config=config, column_names=job.column_names) as extraction:
            written = sink.write_rows(extraction.output_column_names, extraction)

    except ValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_USAGE
    except XMLExtractionError as e:
        logger.error(f"Extraction failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_EXTRACTION_FAILED

    print(f"Extracted {written} row(s) from {job.source_path}: "
          f"{extraction.absent_cell_count} absent cell(s), {len(extraction.notices)} notice(s)",
          file=sys.stderr)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
