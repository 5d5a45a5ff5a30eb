#!/usr/bin/env python3
"""
Confluence storage format to Markdown exporter - Main CLI Entry Point

Fetches pages through the Confluence REST API (or reads storage format files
from disk), converts each page to Markdown and writes one file per page.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

import requests

# Add project root to Python path for relative imports
current_dir = Path(__file__).parent
sys.path.insert(0, str(current_dir))

from config_loader import ConfigLoader, get_nested
from converters import MarkdownConverter
from exporters import MarkdownExporter
from fetchers import FetcherError, create_fetcher
from logger import log_config, log_section, setup_logging
from orchestrator import MigrationOrchestrator

__version__ = "1.0.0"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Export Confluence pages (storage format) to Markdown files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export pages matching the configured CQL
  python migrate.py --config config.yaml

  # Only pages modified since a date, in two spaces
  python migrate.py --since-date 2025-04-17 --spaces "ENG,DOC"

  # Use CONFLUENCE_BASE_URL / CONFLUENCE_EMAIL / CONFLUENCE_API_TOKEN
  python migrate.py --output-dir ./output

  # Convert storage files saved on disk
  python migrate.py --mode files --input-dir ./storage

  # Convert one file and print the markdown
  python migrate.py --input page.xml
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration YAML file (default: config.yaml, '
             'environment variables are used when it does not exist)'
    )

    parser.add_argument(
        '--mode',
        choices=['api', 'files'],
        help='Fetch pages from the REST API or from storage files on disk'
    )

    parser.add_argument(
        '--cql',
        type=str,
        help='Base CQL query (default: type=page)'
    )

    parser.add_argument(
        '--since-date',
        type=str,
        help='Only pages modified on or after this date (YYYY-MM-DD)'
    )

    parser.add_argument(
        '--spaces',
        type=str,
        help='Comma-separated list of space keys'
    )

    parser.add_argument(
        '--max-pages',
        type=int,
        help='Stop after this many pages'
    )

    parser.add_argument(
        '--input-dir',
        type=str,
        help='Directory of storage format files (files mode)'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        help='Directory for the markdown files'
    )

    parser.add_argument(
        '--input',
        type=str,
        help='Convert a single storage format file and print the markdown'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Convert pages without writing files'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write logs to this file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def load_configuration(args: argparse.Namespace, logger: logging.Logger) -> dict:
    """Load the config file, or the environment when there is none, then apply CLI overrides."""
    if os.path.exists(args.config):
        logger.info(f"Loading configuration from {args.config}")
        config = ConfigLoader.load(args.config)
    else:
        logger.info(f"No configuration file at {args.config}, reading environment variables")
        config = ConfigLoader.from_env()

    config = ConfigLoader.merge_with_args(config, args)
    ConfigLoader.validate(config)
    return config


def convert_single_file(path: str) -> int:
    """Print the markdown of one storage format file."""
    content = Path(path).read_text(encoding='utf-8')
    sys.stdout.write(MarkdownConverter().convert(content))
    return 0


def run_migration(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Fetch, convert and export. Returns the process exit code."""
    log_section("Fetching pages")
    try:
        fetcher = create_fetcher(config, logger)
        pages = fetcher.fetch_pages()
    except requests.exceptions.RequestException as e:
        logger.error(f"Error fetching Confluence data: {e}")
        return 1
    except FetcherError as e:
        logger.error(str(e))
        return 1

    if not pages:
        logger.warning("No pages to process")
        return 0

    exporter = MarkdownExporter(get_nested(config, 'export.output_directory', './output'), logger=logger)
    orchestrator = MigrationOrchestrator(
        exporter,
        dry_run=get_nested(config, 'migration.dry_run', False),
        show_progress=sys.stderr.isatty()
    )

    results = orchestrator.run(pages)
    summary = orchestrator.summary(results)

    log_section("Summary")
    logger.info(f"Pages: {summary['total']}, succeeded: {summary['succeeded']}, failed: {summary['failed']}")
    for failed in summary['failed_pages']:
        logger.warning(f"Failed: \"{failed['title']}\" (ID: {failed['id']}): {failed['error']}")

    logger.info("Finished processing all pages.")
    return 1 if summary['succeeded'] == 0 else 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        logger = setup_logging(verbosity=args.verbose, log_file=args.log_file)

        if args.input:
            return convert_single_file(args.input)

        log_section("Confluence to Markdown Export")
        logger.info(f"Version: {__version__}")

        config = load_configuration(args, logger)

        # Reconfigure logging with config file settings
        logger = setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=None if args.verbose else get_nested(config, 'logging.level')
        )
        log_config(config)

        return run_migration(config, args, logger)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nExport interrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"ERROR: Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
