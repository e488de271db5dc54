"""Record factories and test doubles shared by the test modules."""

import json
from typing import Any, Dict, List, Optional

from identity_migration.loaders.base import BaseLoader
from identity_migration.models.record import LoadStatus, MigrationResult, ValidatedRecord


def make_user(oid: str = "5f1d7c2e9b1e8a0012345678", **overrides: Any) -> Dict[str, Any]:
    record = {
        "_id": {"$oid": oid},
        "email": f"user{oid[-4:]}@example.com",
        "first_name": "Ada",
        "last_name": "Lovelace",
    }
    record.update(overrides)
    return record


def make_organization(oid: str = "6a2e8d3f0c2f9b0023456789", **overrides: Any) -> Dict[str, Any]:
    record = {
        "_id": {"$oid": oid},
        "organization_name": "Analytical Engines AB",
        "email": "owner@example.com",
    }
    record.update(overrides)
    return record


def read_log_entries(path) -> List[Dict[str, Any]]:
    """Parse a failure log: pretty-printed JSON objects, each preceded by a newline."""
    decoder = json.JSONDecoder()
    content = path.read_text(encoding="utf-8")
    entries, pos = [], 0
    while True:
        while pos < len(content) and content[pos].isspace():
            pos += 1
        if pos >= len(content):
            return entries
        entry, pos = decoder.raw_decode(content, pos)
        entries.append(entry)


class ScriptedLoader(BaseLoader):
    """Loader replaying a script of statuses per external id; unscripted calls succeed."""

    STATUS_CODES = {
        LoadStatus.CREATED: 200,
        LoadStatus.CONFLICT: 422,
        LoadStatus.RATE_LIMITED: 429,
        LoadStatus.FAILED: 500,
    }

    def __init__(self, script: Optional[Dict[str, List[LoadStatus]]] = None):
        super().__init__("scripted")
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.calls: List[ValidatedRecord] = []

    def create_entity(self, record: ValidatedRecord) -> MigrationResult:
        self.calls.append(record)
        statuses = self.script.get(record.external_id)
        status = statuses.pop(0) if statuses else LoadStatus.CREATED
        created = status == LoadStatus.CREATED
        return MigrationResult(
            record_id=record.external_id,
            status=status,
            target_id=f"user_{record.external_id}" if created else None,
            error=None if created else f"{status.value} error",
            status_code=self.STATUS_CODES[status],
        )

    def find_id_by_email(self, email: str) -> Optional[str]:
        return None

    def calls_for(self, external_id: str) -> int:
        return sum(1 for r in self.calls if r.external_id == external_id)


class SleepRecorder:
    """Stand-in for ``time.sleep`` that records requested waits."""

    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
