"""Bounded, persisted log of past analyses.

The log is newest-first and never holds more than ``capacity`` entries.
Ordering follows insertion, not timestamps. Persistence problems are
logged and reported but never raised: the history is a convenience and
must not block showing a result.

Known limitation: there is no coordination between processes. Two
sessions writing the same slot can overwrite each other's entries.
"""

import json
import logging
import threading
from collections.abc import Callable

from auditscore.config import HISTORY_CAPACITY
from auditscore.errors import PersistenceUnavailable
from auditscore.history.storage import StoragePort
from auditscore.models import HistoryEntry, ScoreReport
from auditscore.utils import now_ms

logger = logging.getLogger(__name__)

HistoryLog = list[HistoryEntry]
ErrorReporter = Callable[[PersistenceUnavailable], None]


class HistoryStore:
    """Persisted history of analyses behind an injected storage port.

    Every operation runs under one lock, so calls made from one session
    are applied in the order they were issued.

    Args:
        storage: Slot the serialized log is kept in.
        capacity: Maximum number of entries kept.
        clock: Returns the current time in milliseconds.
        on_error: Called with every persistence failure, after logging.
    """

    def __init__(
        self,
        storage: StoragePort,
        *,
        capacity: int = HISTORY_CAPACITY,
        clock: Callable[[], int] = now_ms,
        on_error: ErrorReporter | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.storage = storage
        self.capacity = capacity
        self._clock = clock
        self._on_error = on_error
        self._lock = threading.RLock()

    # --- internals ---

    def _report(self, exc: PersistenceUnavailable) -> None:
        logger.warning("History persistence unavailable: %s", exc)
        if self._on_error is not None:
            self._on_error(exc)

    def _decode(self, text: str) -> HistoryLog:
        try:
            payload = json.loads(text)
            if not isinstance(payload, list):
                raise ValueError("history must be a JSON array")
            return [HistoryEntry.from_dict(item) for item in payload]
        except (ValueError, RecursionError) as exc:
            # JSONDecodeError is a ValueError; deep nesting raises RecursionError.
            logger.warning("Discarding corrupt history: %s", exc)
            return []

    # --- public API ---

    def load(self) -> HistoryLog:
        """Return the persisted log, newest first.

        Missing, unreadable or corrupt data yields an empty log.
        """
        with self._lock:
            try:
                text = self.storage.read()
            except PersistenceUnavailable as exc:
                self._report(exc)
                return []

            if text is None or not text.strip():
                return []

            entries = self._decode(text)
            logger.debug("Loaded %d history entries", len(entries))
            return entries[: self.capacity]

    def record(self, entry: HistoryEntry, current_log: HistoryLog) -> HistoryLog:
        """Prepend *entry* to *current_log*, persist and return the result.

        The oldest entries beyond ``capacity`` are dropped. The returned
        log is updated even when it could not be persisted.
        """
        with self._lock:
            updated = [entry, *current_log][: self.capacity]
            try:
                self.storage.write(
                    json.dumps([item.to_dict() for item in updated], indent=2)
                )
            except PersistenceUnavailable as exc:
                self._report(exc)
            except (TypeError, ValueError) as exc:
                self._report(
                    PersistenceUnavailable(
                        f"History entry is not serializable: {exc}",
                        context={"contract_label": entry.contract_label},
                    )
                )
            else:
                logger.debug(
                    "Recorded '%s' (%d/%d entries)",
                    entry.contract_label,
                    len(updated),
                    self.capacity,
                )
            return updated

    def add(self, entry: HistoryEntry) -> HistoryLog:
        """Load the current log and record *entry* on top of it as one step."""
        with self._lock:
            return self.record(entry, self.load())

    def new_entry(
        self,
        findings: dict,
        score: ScoreReport,
        label: str | None = None,
    ) -> HistoryEntry:
        """Build an entry stamped no earlier than the newest stored one.

        When *label* is not given the entry is named ``Contract N``, where
        ``N`` is one more than the current number of stored entries.
        """
        with self._lock:
            current = self.load()
            timestamp = self._clock()
            if current:
                timestamp = max(timestamp, max(item.timestamp for item in current))
            if not label:
                label = f"Contract {len(current) + 1}"
            return HistoryEntry(
                timestamp=timestamp,
                contract_label=label,
                findings=findings,
                score=score,
            )
