"""Validation service for raw export records."""

import logging
from typing import Any, Dict, List, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import RecordValidationError
from ..models.record import (
    EntityType,
    OrganizationRecord,
    RawRecord,
    UserRecord,
    ValidatedRecord,
    ValidationError,
)

logger = logging.getLogger(__name__)

SCHEMAS: Dict[EntityType, Type[BaseModel]] = {
    EntityType.USER: UserRecord,
    EntityType.ORGANIZATION: OrganizationRecord,
}

# Never echo these back into the failure log.
SENSITIVE_FIELDS = ("password",)


class RecordValidator:
    """
    Validator turning raw export rows into typed records.

    Validation is all-or-nothing: either every field passes and a typed
    record is returned, or ``RecordValidationError`` lists every problem.
    Unknown fields are ignored. No I/O happens here.
    """

    def __init__(self, entity: EntityType):
        self.entity = entity
        self.schema = SCHEMAS[entity]

    def validate(self, raw: RawRecord) -> ValidatedRecord:
        """
        Validate a raw record against the entity schema.

        Args:
            raw: Record exactly as read from the export file

        Returns:
            The typed record

        Raises:
            RecordValidationError: if any field fails its constraints
        """
        if not isinstance(raw, dict):
            raise RecordValidationError([
                ValidationError(
                    field="record",
                    message=f"Expected a JSON object, got {type(raw).__name__}",
                    error_type="type",
                    value=raw,
                )
            ])

        try:
            return self.schema.model_validate(raw)
        except PydanticValidationError as e:
            errors = self._convert_errors(e.errors())
            logger.debug(f"Record {raw.get('_id')} failed validation: {errors}")
            raise RecordValidationError(errors, record_id=raw.get("_id")) from e

    def is_valid(self, raw: RawRecord) -> bool:
        """Quick check if a record is valid."""
        try:
            self.validate(raw)
        except RecordValidationError:
            return False
        return True

    def _convert_errors(self, raw_errors: List[Dict[str, Any]]) -> List[ValidationError]:
        errors = []
        for err in raw_errors:
            field = ".".join(str(part) for part in err["loc"]) or "record"
            value = None
            if err["type"] != "missing":
                value = err.get("input")
            if any(name in field for name in SENSITIVE_FIELDS):
                value = "***"
            errors.append(ValidationError(
                field=field,
                message=err["msg"],
                error_type=err["type"],
                value=value,
            ))
        return errors
