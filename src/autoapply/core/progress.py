from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

from autoapply.types import ProgressRecord, utcnow

logger = logging.getLogger(__name__)

INITIAL_TITLE = "Initializing..."


class ProgressStore(Protocol):
    def get(self, config_id: int) -> ProgressRecord | None: ...

    def set(self, record: ProgressRecord) -> None: ...

    def delete(self, config_id: int) -> None: ...

    def values(self) -> list[ProgressRecord]: ...


class InMemoryProgressStore:
    def __init__(self) -> None:
        self._records: dict[int, ProgressRecord] = {}
        self._lock = threading.Lock()

    def get(self, config_id: int) -> ProgressRecord | None:
        with self._lock:
            return self._records.get(config_id)

    def set(self, record: ProgressRecord) -> None:
        with self._lock:
            self._records[record.config_id] = record

    def delete(self, config_id: int) -> None:
        with self._lock:
            self._records.pop(config_id, None)

    def values(self) -> list[ProgressRecord]:
        with self._lock:
            return list(self._records.values())


class ProgressTracker:
    """Per-configuration run progress, readable while a run is in flight.

    Records are keyed by configuration id, so concurrent runs for different
    configurations never share state. Terminal records stay readable for
    ``retention_sec`` after ``schedule_cleanup`` and are purged on the next
    access after that.
    """

    def __init__(
        self,
        store: ProgressStore | None = None,
        *,
        retention_sec: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store or InMemoryProgressStore()
        self.retention_sec = retention_sec
        self._clock = clock
        self._expiry: dict[int, float] = {}
        self._lock = threading.Lock()

    def initialize(self, config_id: int) -> ProgressRecord:
        record = ProgressRecord(config_id=config_id, current_job_title=INITIAL_TITLE, status="starting")
        with self._lock:
            self._expiry.pop(config_id, None)
            self.store.set(record)
        return record

    def update(self, config_id: int, **changes: Any) -> ProgressRecord:
        with self._lock:
            current = self.store.get(config_id) or ProgressRecord(config_id=config_id)
            requested = changes.get("current_job")
            if requested is not None and requested < current.current_job:
                raise ValueError(
                    f"progress for config {config_id} cannot move back from "
                    f"{current.current_job} to {requested}"
                )

            payload = current.model_dump()
            payload.update(changes)
            payload["config_id"] = config_id
            payload["updated_at"] = utcnow()
            record = ProgressRecord.model_validate(payload)
            self.store.set(record)
        return record

    def get(self, config_id: int) -> ProgressRecord | None:
        self.purge_expired()
        return self.store.get(config_id)

    def get_all(self) -> list[ProgressRecord]:
        self.purge_expired()
        return self.store.values()

    def clear(self, config_id: int) -> None:
        with self._lock:
            self._expiry.pop(config_id, None)
            self.store.delete(config_id)

    def schedule_cleanup(self, config_id: int, delay: float | None = None) -> None:
        retention = self.retention_sec if delay is None else delay
        with self._lock:
            self._expiry[config_id] = self._clock() + retention

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [config_id for config_id, deadline in self._expiry.items() if deadline <= now]
            for config_id in expired:
                del self._expiry[config_id]
                self.store.delete(config_id)
        if expired:
            logger.debug("purged progress records for configs %s", expired)
        return len(expired)
