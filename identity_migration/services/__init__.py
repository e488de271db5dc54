"""Service layer for the migration application."""

from .validator import RecordValidator
from .failure_log import FailureLog

__all__ = [
    "RecordValidator",
    "FailureLog",
]
