"""Record sources for legacy exports."""

from .base import BaseExtractor, ExtractionResult
from .json_extractor import JSONArrayExtractor

__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "JSONArrayExtractor",
]
