"""Data loaders for the target project."""

from .base import BaseLoader
from .table_loader import TableLoader

__all__ = ["BaseLoader", "TableLoader"]
