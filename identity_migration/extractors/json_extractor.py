"""JSON array export extractor."""

import json
import logging
from pathlib import Path
from typing import Union
from datetime import datetime, timezone

from .base import BaseExtractor, ExtractionResult
from ..exceptions import InputFileError, InputFormatError

logger = logging.getLogger(__name__)


class JSONArrayExtractor(BaseExtractor):
    """
    Extractor for legacy exports stored as a single JSON array.

    The whole file is read into memory. Elements are passed through untouched,
    even if they are not objects; the validator rejects those per record.
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        offset: int = 0,
        encoding: str = "utf-8"
    ):
        """
        Initialize the JSON extractor.

        Args:
            file_path: Path to the exported JSON array
            offset: Number of leading records to skip
            encoding: File encoding
        """
        super().__init__(offset)
        self.file_path = Path(file_path)
        self.encoding = encoding

    def extract(self) -> ExtractionResult:
        """Read the export file and return the records after the offset."""
        started_at = datetime.now(timezone.utc)

        try:
            with open(self.file_path, "r", encoding=self.encoding) as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise InputFileError(
                f"Could not read input file {self.file_path}: {e}",
                file_path=str(self.file_path),
            ) from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise InputFormatError(
                f"Input file {self.file_path} is not valid JSON: {e}",
                file_path=str(self.file_path),
            ) from e

        if not isinstance(data, list):
            raise InputFormatError(
                f"Input file {self.file_path} must contain a JSON array, "
                f"got {type(data).__name__}",
                file_path=str(self.file_path),
            )

        records = self.apply_offset(data)
        logger.info(
            f"Loaded {len(data)} records from {self.file_path}, "
            f"{len(records)} remaining after offset {self.offset}"
        )

        return ExtractionResult(
            source=str(self.file_path),
            records=records,
            total_in_source=len(data),
            offset=self.offset,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )
