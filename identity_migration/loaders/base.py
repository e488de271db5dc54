"""Base loader interface for the target identity service."""

from abc import ABC, abstractmethod
from typing import Optional
import logging

from ..models.record import ValidatedRecord, MigrationResult

logger = logging.getLogger(__name__)


class BaseLoader(ABC):
    """
    Base class for data loaders.

    Loaders create validated records in the target service and report the
    outcome as a ``MigrationResult``. They never raise for remote errors:
    conflicts, rate limiting and any other failure come back as a
    ``LoadStatus`` so the caller can decide whether to retry.
    """

    def __init__(
        self,
        target_service: str,
        api_key: Optional[str] = None,
        dry_run: bool = False
    ):
        """
        Initialize the loader.

        Args:
            target_service: Name of the target service
            api_key: API key for authentication
            dry_run: If True, simulate without making changes
        """
        self.target_service = target_service
        self.api_key = api_key
        self.dry_run = dry_run

    @abstractmethod
    def create_entity(self, record: ValidatedRecord) -> MigrationResult:
        """
        Create a single record in the target service.

        Args:
            record: Validated record to create

        Returns:
            MigrationResult with the classified status
        """
        pass

    @abstractmethod
    def find_id_by_email(self, email: str) -> Optional[str]:
        """
        Look up the remote id of the user owning ``email``.

        Best effort: any error is treated as "not found".

        Args:
            email: Email address to search for

        Returns:
            The remote user id, or None
        """
        pass
