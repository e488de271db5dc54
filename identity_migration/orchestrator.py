"""Migration orchestrator - drives records one at a time into the target service."""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .exceptions import RecordValidationError
from .loaders.base import BaseLoader
from .models.migration import (
    FailureLogEntry,
    FailureReason,
    MigrationOutcome,
    RunCounters,
)
from .models.record import (
    EntityType,
    LoadStatus,
    MigrationResult,
    RawRecord,
    ValidatedRecord,
)
from .progress import SpinnerProgress
from .services.failure_log import FailureLog
from .services.validator import RecordValidator

logger = logging.getLogger(__name__)

OUTCOMES = {
    LoadStatus.CREATED: MigrationOutcome.CREATED,
    LoadStatus.CONFLICT: MigrationOutcome.ALREADY_EXISTS,
    LoadStatus.RATE_LIMITED: MigrationOutcome.RATE_LIMITED,
    LoadStatus.FAILED: MigrationOutcome.PERMANENT_FAILURE,
}


class MigrationOrchestrator:
    """
    Sequential, throttled migration driver.

    Every record goes through the same steps before the next one starts:

    1. wait ``delay_ms`` (also before the first record)
    2. validate; an invalid record is logged and skipped
    3. create it remotely:
       - created: counted as migrated
       - conflict (422): logged and counted as already existing, never retried
       - rate limited (429): wait ``retry_delay_ms`` and try the same record
         again, forever unless ``max_rate_limit_retries`` is set
       - anything else: logged with the full error, never retried

    Only one record is ever in flight, which keeps the request rate under the
    remote's shared limit. A stop request is honoured between records only.
    Failure log write errors propagate and end the run.
    """

    def __init__(
        self,
        entity: EntityType,
        loader: BaseLoader,
        failure_log: FailureLog,
        delay_ms: int = 1000,
        retry_delay_ms: int = 10000,
        max_rate_limit_retries: Optional[int] = None,
        validator: Optional[RecordValidator] = None,
        progress: Optional[SpinnerProgress] = None,
        sleep: Optional[Callable[[float], None]] = None,
        stop_event: Optional[threading.Event] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            entity: Kind of record being migrated
            loader: Target service loader
            failure_log: Sink for records that were not migrated
            delay_ms: Wait before each record
            retry_delay_ms: Wait after a rate limit response
            max_rate_limit_retries: Give up on a record after this many
                rate limited retries; None retries forever
            validator: Record validator, defaults to one for ``entity``
            progress: Optional status line
            sleep: Blocking wait taking seconds, defaults to ``time.sleep``
            stop_event: Set it to stop before the next record
        """
        self.entity = entity
        self.loader = loader
        self.failure_log = failure_log
        self.delay_ms = delay_ms
        self.retry_delay_ms = retry_delay_ms
        self.max_rate_limit_retries = max_rate_limit_retries
        self.validator = validator or RecordValidator(entity)
        self.progress = progress
        self._sleep = sleep or time.sleep
        self.stop_event = stop_event or threading.Event()

    def run(self, records: List[RawRecord], start_index: int = 0) -> RunCounters:
        """
        Migrate ``records`` in order.

        Args:
            records: Raw records, already offset
            start_index: Position of ``records[0]`` in the input file, used in the log

        Returns:
            RunCounters for this run
        """
        counters = RunCounters(total=len(records))
        counters.started_at = datetime.now(timezone.utc)
        total = len(records)
        label = self.entity.value

        logger.info(
            f"Migrating {total} {self.entity.plural} "
            f"(delay {self.delay_ms} ms, rate limit cooldown {self.retry_delay_ms} ms)"
        )
        self._start_progress(f"Migrating {self.entity.plural}")

        try:
            for position, raw in enumerate(records):
                if self.stop_event.is_set():
                    break

                self._update_progress(f"Migrating {label} {position}/{total}, cooldown")
                self._sleep(self.delay_ms / 1000.0)

                if self.stop_event.is_set():
                    break

                self._update_progress(f"Migrating {label} {position + 1}/{total}")
                self.process_record(raw, start_index + position, counters)
                counters.processed += 1
        except BaseException:
            self._fail_progress("Migration aborted")
            raise
        finally:
            counters.completed_at = datetime.now(timezone.utc)

        if counters.processed < total:
            counters.cancelled = True
            logger.warning(
                f"Migration stopped after {counters.processed}/{total} {self.entity.plural}; "
                f"resume with OFFSET={start_index + counters.processed}"
            )
            self._fail_progress("Migration cancelled")
        else:
            self._succeed_progress("Migration complete")

        logger.info(f"Run finished: {counters.to_dict()}")
        return counters

    def process_record(
        self,
        raw: RawRecord,
        index: int,
        counters: RunCounters
    ) -> MigrationOutcome:
        """
        Validate and create one record, updating ``counters``.

        Returns:
            The final outcome for the record, never ``RATE_LIMITED``
        """
        record_id = raw.get("_id") if isinstance(raw, dict) else None

        try:
            record = self.validator.validate(raw)
        except RecordValidationError as e:
            logger.warning(f"{self.entity.value} {record_id} at index {index} is invalid: {e}")
            self._log_failure(
                record_id, index,
                MigrationOutcome.PERMANENT_FAILURE, FailureReason.VALIDATION,
                e.to_dict(),
            )
            counters.failed += 1
            return MigrationOutcome.PERMANENT_FAILURE

        return self._create(record, record_id, index, counters)

    def _create(
        self,
        record: ValidatedRecord,
        record_id: Any,
        index: int,
        counters: RunCounters
    ) -> MigrationOutcome:
        retries = 0

        while True:
            result = self._attempt(record)
            outcome = self.classify(result)

            if outcome == MigrationOutcome.CREATED:
                counters.migrated += 1
                logger.debug(f"Created {self.entity.value} {record.external_id} as {result.target_id}")
                return outcome

            if outcome == MigrationOutcome.ALREADY_EXISTS:
                logger.info(f"{self.entity.value} {record.external_id} already exists")
                self._log_failure(
                    record_id, index, outcome, FailureReason.CONFLICT, result.error_details()
                )
                counters.already_exists += 1
                return outcome

            if outcome == MigrationOutcome.PERMANENT_FAILURE:
                logger.error(f"Failed to create {self.entity.value} {record.external_id}: {result.error}")
                self._log_failure(
                    record_id, index, outcome, FailureReason.GATEWAY, result.error_details()
                )
                counters.failed += 1
                return outcome

            if self.max_rate_limit_retries is not None and retries >= self.max_rate_limit_retries:
                logger.error(
                    f"Giving up on {self.entity.value} {record.external_id} "
                    f"after {retries} rate limited retries"
                )
                details = result.error_details()
                details["retries"] = retries
                self._log_failure(
                    record_id, index,
                    MigrationOutcome.PERMANENT_FAILURE, FailureReason.RATE_LIMIT_EXHAUSTED,
                    details,
                )
                counters.failed += 1
                return MigrationOutcome.PERMANENT_FAILURE

            retries += 1
            counters.rate_limit_retries += 1
            self._cooldown()

    def _attempt(self, record: ValidatedRecord) -> MigrationResult:
        try:
            return self.loader.create_entity(record)
        except Exception as e:
            logger.exception(f"Loader raised for {self.entity.value} {record.external_id}")
            return MigrationResult(
                record_id=record.external_id,
                status=LoadStatus.FAILED,
                error=f"{type(e).__name__}: {e}",
            )

    def _cooldown(self) -> None:
        text = self.progress.text if self.progress else ""
        logger.info(f"Rate limit reached, waiting for {self.retry_delay_ms} ms")
        self._update_progress(f"{text} - rate limit reached, waiting for {self.retry_delay_ms} ms")
        self._sleep(self.retry_delay_ms / 1000.0)
        self._update_progress(text)

    @staticmethod
    def classify(result: MigrationResult) -> MigrationOutcome:
        """Map a loader status onto the driver's outcome."""
        return OUTCOMES[result.status]

    def _log_failure(
        self,
        record_id: Any,
        index: int,
        outcome: MigrationOutcome,
        reason: FailureReason,
        error: Dict[str, Any]
    ) -> None:
        self.failure_log.append(FailureLogEntry(
            record_id=record_id,
            entity=self.entity.value,
            index=index,
            outcome=outcome,
            reason=reason,
            error=error,
        ))

    def _start_progress(self, text: str) -> None:
        if self.progress:
            self.progress.start(text)

    def _update_progress(self, text: str) -> None:
        if self.progress:
            self.progress.update(text)

    def _succeed_progress(self, text: str) -> None:
        if self.progress:
            self.progress.succeed(text)

    def _fail_progress(self, text: str) -> None:
        if self.progress:
            self.progress.fail(text)
