"""Loader that writes rows through the target's query client."""

import logging
import threading
from typing import List, Optional

from .base import BaseLoader
from ..clients.base import QueryClient
from ..models.record import Row

logger = logging.getLogger(__name__)


class TableLoader(BaseLoader):
    """
    Inserts rows into the target project.

    With ``upsert`` enabled, batches whose rows carry an ``id`` are written as
    upserts on ``id`` so importing the same export twice leaves a single row.
    """

    def __init__(
        self,
        client: QueryClient,
        batch_size: int = 100,
        upsert: bool = True,
        cancel_event: Optional[threading.Event] = None
    ):
        super().__init__(batch_size, cancel_event)
        self.client = client
        self.upsert = upsert

    def write_batch(self, table: str, rows: List[Row]) -> None:
        use_upsert = self.upsert and all("id" in row for row in rows)
        self.client.insert(table, rows, upsert=use_upsert, on_conflict="id")
