"""In-memory storage for migration runs and their log lines."""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from ..models.migration import MigrationConfig, MigrationRun, MigrationStatus


class RunLogHandler(logging.Handler):
    """
    Copies engine log records into a run's log panel.

    Only records emitted on the thread executing the run are captured, so
    concurrent runs do not mix their lines.
    """

    def __init__(self, run: MigrationRun, thread_id: Optional[int] = None):
        super().__init__(level=logging.INFO)
        self.run = run
        self.thread_id = thread_id if thread_id is not None else threading.get_ident()

    def emit(self, record: logging.LogRecord) -> None:
        if record.thread != self.thread_id:
            return
        try:
            message = record.getMessage()
        except Exception:
            self.handleError(record)
            return
        self.run.add_log(message, at=datetime.fromtimestamp(record.created))


MAX_RUNS = 100


def _is_active(run: MigrationRun) -> bool:
    return run.status in (MigrationStatus.PENDING, MigrationStatus.RUNNING)


class MigrationRunStorage:
    """
    Thread-safe in-memory store of runs, their configs and cancel events.

    Holds at most ``max_runs`` runs; adding beyond that evicts the oldest
    finished ones. Active runs are never evicted.
    """

    def __init__(self, max_runs: int = MAX_RUNS):
        self.max_runs = max_runs
        self._lock = threading.Lock()
        self._runs: Dict[str, MigrationRun] = {}
        self._configs: Dict[str, MigrationConfig] = {}
        self._cancel_events: Dict[str, threading.Event] = {}

    def add(self, run: MigrationRun, config: MigrationConfig) -> threading.Event:
        """Register a run (new or resumed) and return a fresh cancel event for it."""
        event = threading.Event()
        with self._lock:
            self._runs[run.id] = run
            self._configs[run.id] = config
            self._cancel_events[run.id] = event
            self._evict_finished(keep=run.id)
        return event

    def _evict_finished(self, keep: str) -> None:
        overflow = len(self._runs) - self.max_runs
        if overflow <= 0:
            return

        finished = sorted(
            (r for r in self._runs.values() if r.id != keep and not _is_active(r)),
            key=lambda r: r.created_at,
        )
        for run in finished[:overflow]:
            del self._runs[run.id]
            self._configs.pop(run.id, None)
            self._cancel_events.pop(run.id, None)

    def get(self, run_id: str) -> Optional[MigrationRun]:
        with self._lock:
            return self._runs.get(run_id)

    def get_config(self, run_id: str) -> Optional[MigrationConfig]:
        with self._lock:
            return self._configs.get(run_id)

    def list_all(self) -> List[MigrationRun]:
        with self._lock:
            runs = list(self._runs.values())
        return sorted(runs, key=lambda r: r.created_at, reverse=True)

    def is_active(self, run_id: str) -> bool:
        run = self.get(run_id)
        return run is not None and _is_active(run)

    def cancel(self, run_id: str) -> bool:
        """Signal cancellation; False if the run is unknown."""
        with self._lock:
            event = self._cancel_events.get(run_id)
        if event is None:
            return False
        event.set()
        return True

    def clear(self) -> None:
        with self._lock:
            self._runs.clear()
            self._configs.clear()
            self._cancel_events.clear()


migration_storage = MigrationRunStorage()
