"""Command line entry points for the identity migration tool."""

import argparse
import logging
import signal
import sys
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional

from .config import MigrationSettings, load_settings
from .exceptions import ConfigurationError, LogWriteError, RecordSourceError
from .extractors.json_extractor import JSONArrayExtractor
from .loaders.clerk_loader import ClerkLoader
from .models.migration import RunCounters
from .models.record import EntityType
from .orchestrator import MigrationOrchestrator
from .progress import SpinnerProgress
from .services.failure_log import FailureLog

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Identity Migration Tool - Import legacy users and organizations into Clerk"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--dry-run", action="store_true", help="Validate and log without creating anything")

    subparsers = parser.add_subparsers(dest="command", help="Commands")
    for entity in EntityType:
        sub = subparsers.add_parser(entity.plural, help=f"Migrate {entity.plural}")
        sub.add_argument(
            "input_file",
            nargs="?",
            default=entity.default_input_file,
            help=f"JSON array export (default: {entity.default_input_file})",
        )

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    entity = EntityType(args.command[:-1])
    sys.exit(run_migration(entity, args.input_file, dry_run=args.dry_run))


def users_main(argv: Optional[List[str]] = None) -> None:
    """``migrate-users [input_file]``."""
    _single_entity_main(EntityType.USER, argv)


def organizations_main(argv: Optional[List[str]] = None) -> None:
    """``migrate-organizations [input_file]``."""
    _single_entity_main(EntityType.ORGANIZATION, argv)


def _single_entity_main(entity: EntityType, argv: Optional[List[str]]) -> None:
    parser = argparse.ArgumentParser(description=f"Import legacy {entity.plural} into Clerk")
    parser.add_argument("input_file", nargs="?", default=entity.default_input_file)
    args = parser.parse_args(argv)
    configure_logging(False)
    sys.exit(run_migration(entity, args.input_file))


def configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def run_migration(
    entity: EntityType,
    input_file: Optional[str] = None,
    dry_run: bool = False,
    settings: Optional[MigrationSettings] = None,
    sleep: Optional[Callable[[float], None]] = None,
    progress: Optional[SpinnerProgress] = None
) -> int:
    """
    Run a full migration and print the summary.

    Args:
        entity: Kind of record to migrate
        input_file: Export file, defaults to ``<entities>.json``
        dry_run: Skip remote writes
        settings: Preloaded settings, otherwise read from the environment
        sleep: Override for the driver's blocking wait
        progress: Override for the status line

    Returns:
        Process exit code
    """
    print(f"Clerk {entity.value.capitalize()} Migration Utility")

    try:
        settings = settings or load_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    input_file = input_file or entity.default_input_file
    print(f"Fetching {entity.plural} from {input_file}")

    try:
        extraction = JSONArrayExtractor(input_file, offset=settings.offset).extract()
    except RecordSourceError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(
        f"{input_file} found and parsed, attempting migration with an offset of {settings.offset}"
    )
    logger.debug(f"Extraction: {extraction.to_dict()}")

    run_id = uuid.uuid4().hex
    failure_log = FailureLog.for_run(settings.log_dir, datetime.now(timezone.utc), run_id)
    loader = ClerkLoader(
        api_key=settings.secret_key,
        base_url=settings.api_url,
        dry_run=dry_run,
        timeout=settings.request_timeout,
        default_role_id=settings.default_role_id,
        default_locale=settings.default_locale,
    )
    stop_event = threading.Event()
    orchestrator = MigrationOrchestrator(
        entity=entity,
        loader=loader,
        failure_log=failure_log,
        delay_ms=settings.delay_ms,
        retry_delay_ms=settings.retry_delay_ms,
        max_rate_limit_retries=settings.max_rate_limit_retries,
        progress=progress or SpinnerProgress(),
        sleep=sleep,
        stop_event=stop_event,
    )

    logger.debug(f"Run {run_id} settings: {settings.to_dict()}")

    try:
        with stop_on_signals(stop_event):
            counters = orchestrator.run(extraction.records, start_index=settings.offset)
    except LogWriteError as e:
        logger.error(f"Aborting, failures can no longer be recorded: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print_summary(entity, counters)

    if failure_log.entries_written:
        logger.info(f"{failure_log.entries_written} entries written to {failure_log.path}")

    return EXIT_CANCELLED if counters.cancelled else EXIT_OK


def print_summary(entity: EntityType, counters: RunCounters) -> None:
    """Print the two-line run summary.

    The second line reports the already-exists count under the label the
    tool has always printed. Permanent failures are reported through logging.
    """
    print(f"{counters.migrated} {entity.plural} migrated")
    print(f"{counters.already_exists} {entity.plural} failed to upload")
    if counters.failed:
        logger.warning(f"{counters.failed} {entity.plural} could not be migrated, see the failure log")


@contextmanager
def stop_on_signals(stop_event: threading.Event) -> Iterator[None]:
    """Turn SIGINT/SIGTERM into a stop request honoured between records."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _request_stop(signum, frame):
        if stop_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Stop requested, finishing the current record (press Ctrl+C again to abort)")
        stop_event.set()

    previous = {
        sig: signal.signal(sig, _request_stop)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


if __name__ == "__main__":
    main()
