"""Data models for the migration application."""

from .migration import (
    MigrationOutcome,
    FailureReason,
    RunCounters,
    FailureLogEntry,
)
from .record import (
    EntityType,
    RawRecord,
    ValidationError,
    LegacyId,
    UserRecord,
    OrganizationRecord,
    ValidatedRecord,
    LoadStatus,
    MigrationResult,
)

__all__ = [
    "MigrationOutcome",
    "FailureReason",
    "RunCounters",
    "FailureLogEntry",
    "EntityType",
    "RawRecord",
    "ValidationError",
    "LegacyId",
    "UserRecord",
    "OrganizationRecord",
    "ValidatedRecord",
    "LoadStatus",
    "MigrationResult",
]
