"""Record models for migration data."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
from enum import Enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# Raw records are plain JSON objects straight from the export file.
RawRecord = Dict[str, Any]


class EntityType(str, Enum):
    """Kinds of entity the tool can migrate."""
    USER = "user"
    ORGANIZATION = "organization"

    @property
    def plural(self) -> str:
        return f"{self.value}s"

    @property
    def default_input_file(self) -> str:
        return f"{self.plural}.json"


@dataclass
class ValidationError:
    """A validation error on a record."""
    field: str
    message: str
    error_type: str = "validation"
    value: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "field": self.field,
            "message": self.message,
            "error_type": self.error_type,
            "value": self.value,
        }


class LegacyId(BaseModel):
    """Exported primary key of the legacy document store: ``{"$oid": "..."}``."""
    model_config = ConfigDict(populate_by_name=True)

    oid: str = Field(alias="$oid")


class _LegacyRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    legacy_id: LegacyId = Field(alias="_id")

    @property
    def external_id(self) -> str:
        """Identifier carried into the remote service as a cross-reference."""
        return self.legacy_id.oid

    @property
    def mongo_id(self) -> Dict[str, str]:
        """The legacy key in its exported shape."""
        return self.legacy_id.model_dump(by_alias=True)


class UserRecord(_LegacyRecord):
    """A validated user export row."""
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    organization_id: Optional[str] = None
    mobile_organization_id: Optional[str] = None
    locale: Optional[str] = None
    role_id: Optional[str] = None
    super_admin: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format")
        return value


class OrganizationRecord(_LegacyRecord):
    """A validated organization export row.

    ``email`` is the address of the user who created the organization and is
    only used to look that user up in the remote service.
    """
    organization_name: str
    email: str


ValidatedRecord = Union[UserRecord, OrganizationRecord]


class LoadStatus(str, Enum):
    """Classification of a single create call against the remote service."""
    CREATED = "created"
    CONFLICT = "conflict"  # HTTP 422, identifier already imported
    RATE_LIMITED = "rate_limited"  # HTTP 429
    FAILED = "failed"


@dataclass
class MigrationResult:
    """Result of attempting to load a record to the target."""
    record_id: str
    status: LoadStatus
    target_id: Optional[str] = None  # ID assigned by target system
    error: Optional[str] = None
    status_code: Optional[int] = None
    response_data: Optional[Any] = None
    loaded_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.status == LoadStatus.CREATED

    def error_details(self) -> Dict[str, Any]:
        """Error payload written to the failure log."""
        return {
            "status": self.status_code,
            "message": self.error,
            "response": self.response_data,
        }
