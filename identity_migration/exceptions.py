"""Exceptions raised by the migration tool.

Only conditions that stop a record or the whole run are exceptions. Remote
conflicts, rate limiting and other gateway errors are reported as
``LoadStatus`` values on a ``MigrationResult`` instead.
"""

from typing import Any, Dict, List, Optional


class MigrationError(Exception):
    """Base class for all migration errors."""


class ConfigurationError(MigrationError):
    """Required configuration is missing or unsafe. Raised before any record is touched."""


class RecordSourceError(MigrationError):
    """The input file could not be turned into a list of raw records."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message)
        self.file_path = file_path


class InputFileError(RecordSourceError):
    """The input file is missing or unreadable."""


class InputFormatError(RecordSourceError):
    """The input file is not a well-formed JSON array."""


class RecordValidationError(MigrationError):
    """A raw record failed schema validation."""

    def __init__(self, errors: List[Any], record_id: Optional[Any] = None):
        self.errors = errors
        self.record_id = record_id
        fields = ", ".join(sorted({e.field for e in errors})) or "record"
        super().__init__(f"Validation failed for {fields}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": str(self),
            "errors": [e.to_dict() for e in self.errors],
        }


class LogWriteError(MigrationError):
    """The failure log could not be written. Always fatal for the run."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
