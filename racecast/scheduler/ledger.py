"""
Agent ledgers

State owned by one agent instance: predictions grouped by race and the
processed-race set for the prediction agent; pending registrations and
matched results for the result collector. The agents mutate these from
the event loop thread; the lock lets request-serving threads read
snapshots concurrently.
"""

import threading
from datetime import datetime
from typing import Optional

from racecast.schemas.prediction import PredictionRecord, ResultEntry


def make_race_key(meet_id: str, race_number: int) -> str:
    """Race identity used for dedup and ledger lookup."""
    return f"{meet_id}-{race_number}"


class PredictionLedger:
    """Per-race prediction buckets plus the processed-race set."""

    def __init__(self):
        self._buckets: dict[str, list[PredictionRecord]] = {}
        self._processed: set[str] = set()
        self._lock = threading.Lock()

    def add(self, record: PredictionRecord) -> None:
        with self._lock:
            self._buckets.setdefault(record.race_key, []).append(record)

    def is_processed(self, race_key: str) -> bool:
        with self._lock:
            return race_key in self._processed

    def mark_processed(self, race_key: str) -> None:
        with self._lock:
            self._processed.add(race_key)

    def snapshot(self) -> dict[str, list[PredictionRecord]]:
        with self._lock:
            return {key: list(records) for key, records in self._buckets.items()}

    def clear_older_than(self, cutoff: datetime) -> int:
        """
        Drop records older than ``cutoff``.

        Returns:
            Number of race buckets removed entirely
        """
        cleared = 0
        with self._lock:
            for key in list(self._buckets):
                fresh = [r for r in self._buckets[key] if r.timestamp > cutoff]
                if fresh:
                    self._buckets[key] = fresh
                else:
                    del self._buckets[key]
                    cleared += 1
        return cleared


class ResultLedger:
    """Pending registrations keyed by (race_key, horse_name) and matched results."""

    def __init__(self):
        self._pending: dict[tuple[str, str], PredictionRecord] = {}
        self._results: list[ResultEntry] = []
        self._lock = threading.Lock()

    def register(self, race_key: str, horse_name: str, prediction: PredictionRecord) -> None:
        with self._lock:
            self._pending[(race_key, horse_name)] = prediction

    def pop_pending(self, race_key: str, horse_name: str) -> Optional[PredictionRecord]:
        with self._lock:
            return self._pending.pop((race_key, horse_name), None)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def append_result(self, entry: ResultEntry) -> None:
        with self._lock:
            self._results.append(entry)

    def results(self) -> list[ResultEntry]:
        with self._lock:
            return list(self._results)

    def purge_pending_before(self, cutoff: datetime) -> int:
        """Drop registrations whose prediction is older than ``cutoff``."""
        with self._lock:
            stale = [key for key, p in self._pending.items() if p.timestamp <= cutoff]
            for key in stale:
                del self._pending[key]
            return len(stale)

    def purge_results_before(self, cutoff: datetime) -> int:
        """Drop results older than ``cutoff``; returns how many were removed."""
        with self._lock:
            before = len(self._results)
            self._results = [r for r in self._results if r.timestamp > cutoff]
            return before - len(self._results)
