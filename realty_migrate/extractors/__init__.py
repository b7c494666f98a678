"""Data extractors for the source project."""

from .base import BaseExtractor, ExtractionResult
from .table_extractor import TableExtractor

__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "TableExtractor",
]
