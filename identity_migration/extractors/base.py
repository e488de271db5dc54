"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from ..models.record import RawRecord

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Result of an extraction operation."""
    source: str
    records: List[RawRecord] = field(default_factory=list)
    total_in_source: int = 0
    offset: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total_extracted(self) -> int:
        return len(self.records)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source": self.source,
            "total_in_source": self.total_in_source,
            "offset": self.offset,
            "total_extracted": self.total_extracted,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


class BaseExtractor(ABC):
    """
    Base class for record sources.

    Extractors pull an ordered list of raw records out of a legacy export and
    apply the starting offset. They never validate individual records.
    """

    def __init__(self, offset: int = 0):
        """
        Initialize the extractor.

        Args:
            offset: Number of leading records to skip
        """
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        self.offset = offset

    @abstractmethod
    def extract(self) -> ExtractionResult:
        """
        Extract all records from the source, skipping the first ``offset``.

        Returns:
            ExtractionResult containing the remaining records in source order
        """
        pass

    def apply_offset(self, items: List[RawRecord]) -> List[RawRecord]:
        """Skip the first ``offset`` records. An offset past the end yields nothing."""
        return items[self.offset:]
