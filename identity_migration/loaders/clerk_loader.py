"""Clerk Backend API loader."""

import logging
import requests
from typing import Any, Dict, Optional, Tuple
from datetime import datetime, timezone

from .base import BaseLoader
from ..models.record import (
    LoadStatus,
    MigrationResult,
    OrganizationRecord,
    UserRecord,
    ValidatedRecord,
)

logger = logging.getLogger(__name__)

HTTP_UNPROCESSABLE_ENTITY = 422
HTTP_TOO_MANY_REQUESTS = 429

DEFAULT_BASE_URL = "https://api.clerk.com/v1"
DEFAULT_ROLE_ID = "5be5659706b068f4f1f2dd53"
DEFAULT_LOCALE = "sv"
MIN_PASSWORD_LENGTH = 8
MIGRATED_PASSWORD_PREFIX = "123"


class ClerkLoader(BaseLoader):
    """
    Loader for the Clerk Backend API.

    Handles loading:
    - Users (``POST /users``)
    - Organizations (``POST /organizations``), resolving the creator by email

    Status codes are classified as: 2xx created, 422 conflict (the external
    id or email is already taken), 429 rate limited, anything else failed.
    Transport errors are failures too.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        dry_run: bool = False,
        timeout: float = 30.0,
        default_role_id: str = DEFAULT_ROLE_ID,
        default_locale: str = DEFAULT_LOCALE,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the Clerk loader.

        Args:
            api_key: Clerk secret key
            base_url: Backend API base URL
            dry_run: If True, simulate without making changes
            timeout: Per-request timeout in seconds
            default_role_id: Role stored in public metadata when a user has none
            default_locale: Locale stored in public metadata when a user has none
            session: Preconfigured session, mostly for tests
        """
        super().__init__("clerk", api_key, dry_run)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.default_role_id = default_role_id
        self.default_locale = default_locale
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication."""
        session = requests.Session()
        session.headers["Authorization"] = f"Bearer {self.api_key}"
        session.headers["Content-Type"] = "application/json"
        return session

    def create_entity(self, record: ValidatedRecord) -> MigrationResult:
        """Create a user or organization in Clerk."""
        if isinstance(record, UserRecord):
            path, payload = "/users", self.build_user_payload(record)
        elif isinstance(record, OrganizationRecord):
            path, payload = "/organizations", self.build_organization_payload(record)
        else:
            raise TypeError(f"Unsupported record type: {type(record).__name__}")

        if self.dry_run:
            logger.debug(f"[dry run] POST {path} for {record.external_id}")
            return MigrationResult(
                record_id=record.external_id,
                status=LoadStatus.CREATED,
                target_id=record.external_id,
                loaded_at=datetime.now(timezone.utc),
            )

        return self._post(path, payload, record.external_id)

    def build_user_payload(self, record: UserRecord) -> Dict[str, Any]:
        """Map a validated user onto the ``POST /users`` body."""
        payload: Dict[str, Any] = {
            "external_id": record.external_id,
            "email_address": [record.email],
            "first_name": record.first_name,
            "last_name": record.last_name,
            "private_metadata": {
                "mongoId": record.mongo_id,
                "organizationId": record.organization_id,
                "mobileOrganizationId": record.mobile_organization_id,
            },
            "public_metadata": {
                "roleId": record.role_id or self.default_role_id,
                "locale": record.locale or self.default_locale,
                "superAdmin": bool(record.super_admin),
            },
        }

        if self.should_send_password(record.password):
            payload["password"] = record.password
        else:
            payload["skip_password_requirement"] = True

        return {k: v for k, v in payload.items() if v is not None}

    @staticmethod
    def should_send_password(password: Optional[str]) -> bool:
        """Only passwords long enough and carrying the migrated prefix are imported.

        Every other user sets a password on first sign-in.
        """
        return bool(
            password
            and len(password) >= MIN_PASSWORD_LENGTH
            and password.startswith(MIGRATED_PASSWORD_PREFIX)
        )

    def build_organization_payload(self, record: OrganizationRecord) -> Dict[str, Any]:
        """Map a validated organization onto the ``POST /organizations`` body."""
        payload: Dict[str, Any] = {
            "name": record.organization_name,
            "private_metadata": {
                "mongoId": record.mongo_id,
                "external_id": record.external_id,
            },
        }

        created_by = self.find_id_by_email(record.email)
        if created_by:
            payload["created_by"] = created_by
        else:
            logger.info(
                f"No user found for {record.email}, creating organization "
                f"{record.external_id} without a creator"
            )

        return payload

    def find_id_by_email(self, email: str) -> Optional[str]:
        """Look up a user id by email address."""
        if self.dry_run:
            return None

        try:
            response = self._session.get(
                f"{self.base_url}/users",
                params={"email_address": [email]},
                timeout=self.timeout,
            )
            response.raise_for_status()
            users = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Error fetching user {email}: {e}")
            return None

        if isinstance(users, dict):
            users = users.get("data", [])
        if not isinstance(users, list) or not users:
            return None
        if not isinstance(users[0], dict):
            logger.warning(f"Unexpected user lookup response for {email}: {users[0]!r}")
            return None
        return users[0].get("id")

    def _post(self, path: str, payload: Dict[str, Any], record_id: str) -> MigrationResult:
        url = f"{self.base_url}{path}"

        try:
            response = self._session.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Request to {url} failed for {record_id}: {e}")
            return MigrationResult(
                record_id=record_id,
                status=LoadStatus.FAILED,
                error=str(e),
            )

        if response.ok:
            response_data = self._json_or_none(response)
            target_id = response_data.get("id") if isinstance(response_data, dict) else None
            return MigrationResult(
                record_id=record_id,
                status=LoadStatus.CREATED,
                target_id=target_id,
                status_code=response.status_code,
                response_data=response_data,
                loaded_at=datetime.now(timezone.utc),
            )

        error_msg, error_data = self._parse_error(response)

        if response.status_code == HTTP_UNPROCESSABLE_ENTITY:
            status = LoadStatus.CONFLICT
        elif response.status_code == HTTP_TOO_MANY_REQUESTS:
            status = LoadStatus.RATE_LIMITED
        else:
            status = LoadStatus.FAILED

        return MigrationResult(
            record_id=record_id,
            status=status,
            error=error_msg,
            status_code=response.status_code,
            response_data=error_data,
        )

    def _parse_error(self, response: requests.Response) -> Tuple[str, Any]:
        """Extract a readable message and the raw error body."""
        error_data = self._json_or_none(response)
        if error_data is None:
            return response.text or f"HTTP {response.status_code}", response.text or None

        error_msg = f"HTTP {response.status_code}"
        if isinstance(error_data, dict):
            errors = error_data.get("errors") or []
            if errors and isinstance(errors[0], dict):
                first = errors[0]
                error_msg = first.get("long_message") or first.get("message") or error_msg
            else:
                error_msg = error_data.get("message") or error_data.get("error") or error_msg

        return error_msg, error_data

    @staticmethod
    def _json_or_none(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None
