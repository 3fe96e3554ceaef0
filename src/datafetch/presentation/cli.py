"""CLI interface for the dataset fetch orchestrator."""
import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from datafetch.domain.models import Run
from datafetch.domain.exceptions import ConfigurationError, DatafetchError, SelectionError
from datafetch.infrastructure.config import ConfigLoader
from datafetch.infrastructure.catalog import CatalogLoader
from datafetch.application.factories import (
    TransportFactory,
    create_orchestrator,
    find_missing_prerequisites,
)
from datafetch.application.selection import select_jobs
from datafetch.presentation.prompt import format_catalog, prompt_for_selection
from datafetch.presentation.summary import format_summary, write_summary
from datafetch.shared.logging import ROOT_LOGGER, setup_logger, get_logger

EXIT_OK = 0
EXIT_JOB_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="datafetch",
        description="Download computer-vision datasets from HTTP, Google Drive, "
                    "Hugging Face, GCS, git and OneDrive sources",
    )
    parser.add_argument('--dest', '-d', type=Path,
                        help='Destination root (env DOWNLOADS_DIR, default ./downloaded_datasets)')
    parser.add_argument('--select', '-s', action='append',
                        help="Jobs to run: 'all', numbers, ranges (3-7), names, datasets or globs")
    parser.add_argument('--config', type=Path, help='Config YAML file (default: datafetch.yaml if present)')
    parser.add_argument('--catalog', type=Path, help='Alternative catalog YAML')
    parser.add_argument('--list', action='store_true', help='Print the numbered catalog and exit')
    parser.add_argument('--force', action='store_true', help='Re-run completed jobs and download existing files again')
    parser.add_argument('--dry-run', action='store_true', help='Show what would be fetched without fetching')
    parser.add_argument('--lenient', action='store_true', help='Exit 0 even when jobs fail')
    parser.add_argument('--no-preflight', action='store_true', help='Skip the prerequisite tool check')
    parser.add_argument('--log-file', type=Path, help='Event log (default: <dest>/download.log)')
    parser.add_argument('--yes', '-y', action='store_true', help="Do not ask before downloading 'all'")
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    load_dotenv()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logger(ROOT_LOGGER, level=log_level)
    logger = get_logger(__name__)

    try:
        overrides = {
            'destination_root': args.dest,
            'log_file': args.log_file,
            'catalog_path': args.catalog,
            'force': True if args.force else None,
            'dry_run': True if args.dry_run else None,
            'lenient': True if args.lenient else None,
        }
        config = ConfigLoader(config_path=args.config).load(overrides=overrides)

        setup_logger(ROOT_LOGGER, level=log_level, log_file=config.resolved_log_file)

        catalog = CatalogLoader(config.catalog_path).load(config.destination_root)

        if args.list:
            print(format_catalog(catalog))
            return EXIT_OK

        if args.select:
            selection = select_jobs(catalog, args.select)
            for warning in selection.warnings:
                logger.warning(warning)
        else:
            selection = prompt_for_selection(catalog, assume_yes=args.yes)
            if selection is None:
                logger.info("Nothing selected, exiting")
                return EXIT_OK

        if not selection.jobs:
            logger.error("Selection matched no jobs")
            return EXIT_CONFIG_ERROR

        factory = TransportFactory(config)
        transports = factory.create_transports()
        extractor = factory.create_extractor()

        if not args.no_preflight and not config.dry_run:
            problems = find_missing_prerequisites(selection.jobs, transports, extractor)
            if problems:
                logger.error("Missing prerequisites:")
                for problem in problems:
                    logger.error(f"  - {problem}")
                logger.error("Install them or re-run with --no-preflight")
                return EXIT_CONFIG_ERROR

        orchestrator = create_orchestrator(config, catalog, transports=transports, extractor=extractor)

        logger.info("=" * 60)
        logger.info("datafetch")
        logger.info(f"Destination: {config.destination_root}")
        logger.info(f"Jobs: {len(selection.jobs)}" + (" (dry run)" if config.dry_run else ""))
        logger.info(f"Log file: {config.resolved_log_file}")
        logger.info("=" * 60)

        run = Run(jobs=tuple(selection.jobs))
        interrupted = False
        try:
            orchestrator.run_selection(run.jobs, run=run)
        except KeyboardInterrupt:
            interrupted = True
            logger.warning(f"Interrupted; {len(run.pending)} job(s) not finished. Re-run to resume.")

        print()
        print(format_summary(run, config.destination_root))
        if not config.dry_run:
            summary_path = write_summary(run, config.destination_root)
            logger.info(f"Summary written to {summary_path}")

        if interrupted:
            return EXIT_INTERRUPTED

        logger.info(
            f"Done: {len(run.succeeded)} succeeded, {len(run.skipped)} skipped, {len(run.failed)} failed"
        )
        if run.failed and not config.lenient:
            return EXIT_JOB_FAILED
        return EXIT_OK

    except (ConfigurationError, SelectionError) as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    except DatafetchError as e:
        logger.error(f"Error: {e}")
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED


if __name__ == '__main__':
    sys.exit(main())
