from __future__ import annotations

import itertools
import threading
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

CallStatus = Literal["success", "failure"]


class GenerationLogRecord(BaseModel):
    id: int = 0
    subject_id: int | None = None
    call_type: str = "generate"
    prompt: str
    response_ref: str | None = None
    latency_ms: int
    status: CallStatus
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class GenerationLogPage(BaseModel):
    content: list[GenerationLogRecord]
    total: int
    page: int
    size: int


class GenerationStats(BaseModel):
    total: int
    success: int
    failure: int
    success_rate: float


class GenerationLogStore:
    """Append-only audit trail of generation attempts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._records: list[GenerationLogRecord] = []

    def append(self, record: GenerationLogRecord) -> GenerationLogRecord:
        with self._lock:
            stored = record.model_copy(update={"id": next(self._ids)})
            self._records.append(stored)
            return stored

    def _matching(
        self,
        call_type: str | None,
        status: str | None,
        subject_id: int | None,
    ) -> list[GenerationLogRecord]:
        return [
            r for r in self._records
            if (call_type is None or r.call_type == call_type)
            and (status is None or r.status == status)
            and (subject_id is None or r.subject_id == subject_id)
        ]

    def list_records(
        self,
        page: int = 0,
        size: int = 10,
        call_type: str | None = None,
        status: str | None = None,
        subject_id: int | None = None,
    ) -> list[GenerationLogRecord]:
        """Newest first."""
        page, size = max(page, 0), max(size, 1)
        with self._lock:
            rows = self._matching(call_type, status, subject_id)
        rows.reverse()
        return rows[page * size:(page + 1) * size]

    def count(
        self,
        call_type: str | None = None,
        status: str | None = None,
        subject_id: int | None = None,
    ) -> int:
        with self._lock:
            return len(self._matching(call_type, status, subject_id))

    def stats(self, call_type: str | None = None) -> GenerationStats:
        """Attempt counts and the success ratio, 0.0 when nothing was attempted."""
        with self._lock:
            rows = self._matching(call_type, None, None)
        success = sum(1 for r in rows if r.status == "success")
        return GenerationStats(
            total=len(rows),
            success=success,
            failure=len(rows) - success,
            success_rate=success / len(rows) if rows else 0.0,
        )


_log_store: GenerationLogStore | None = None


def get_log_store() -> GenerationLogStore:
    global _log_store
    if _log_store is None:
        _log_store = GenerationLogStore()
    return _log_store


def clear_log_store() -> GenerationLogStore:
    global _log_store
    _log_store = GenerationLogStore()
    return _log_store
