"""Append-only log of records that were not migrated."""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ..exceptions import LogWriteError
from ..models.migration import FailureLogEntry

logger = logging.getLogger(__name__)


class FailureLog:
    """
    Run-scoped failure log.

    Each ``append`` opens the file in append mode and writes one
    pretty-printed JSON entry preceded by a newline. The file is never
    truncated or read back. Write errors are fatal for the run.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.entries_written = 0

    @classmethod
    def for_run(
        cls,
        log_dir: Union[str, Path],
        started_at: datetime,
        run_id: Optional[str] = None
    ) -> "FailureLog":
        """
        Build the log for a run started at ``started_at``.

        The name carries the start time to the second plus a short run id,
        so two runs started in the same second still get separate files.
        Aware timestamps are stamped in UTC.
        """
        if started_at.tzinfo is not None:
            started_at = started_at.astimezone(timezone.utc)
        run_id = run_id or uuid.uuid4().hex
        stamp = started_at.strftime("%Y-%m-%dT%H-%M-%S")
        return cls(Path(log_dir) / f"migration-log-{stamp}-{run_id[:8]}.json")

    def append(self, entry: FailureLogEntry) -> None:
        """Append one entry to the log."""
        payload = json.dumps(entry.to_dict(), indent=2, default=str)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(f"\n{payload}")
        except OSError as e:
            raise LogWriteError(
                f"Could not write failure log {self.path}: {e}",
                path=str(self.path),
            ) from e

        self.entries_written += 1
        logger.debug(f"Logged {entry.reason.value} for record {entry.record_id} to {self.path}")
