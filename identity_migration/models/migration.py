"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone


class MigrationOutcome(str, Enum):
    """Outcome of one attempt at migrating a record."""
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    RATE_LIMITED = "rate_limited"
    PERMANENT_FAILURE = "permanent_failure"


class FailureReason(str, Enum):
    """Why a record ended up in the failure log."""
    VALIDATION = "validation"
    CONFLICT = "conflict"
    GATEWAY = "gateway"
    RATE_LIMIT_EXHAUSTED = "rate_limit_exhausted"


@dataclass
class RunCounters:
    """Accumulated counts for a single migration run."""
    migrated: int = 0
    already_exists: int = 0
    failed: int = 0
    processed: int = 0
    rate_limit_retries: int = 0
    total: int = 0
    cancelled: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "migrated": self.migrated,
            "already_exists": self.already_exists,
            "failed": self.failed,
            "processed": self.processed,
            "rate_limit_retries": self.rate_limit_retries,
            "total": self.total,
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class FailureLogEntry:
    """One record that was not migrated, as written to the failure log."""
    record_id: Any  # the raw legacy key, exactly as exported
    entity: str
    index: int  # position in the input file
    outcome: MigrationOutcome
    reason: FailureReason
    error: Dict[str, Any] = field(default_factory=dict)
    logged_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "recordId": self.record_id,
            "entity": self.entity,
            "index": self.index,
            "outcome": self.outcome.value,
            "reason": self.reason.value,
            "error": self.error,
            "loggedAt": self.logged_at.isoformat(),
        }
