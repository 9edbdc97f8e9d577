"""
Pending upload register: authorized-but-uncommitted token image uploads.

Intent:
    Hold one record per content hash between `request_upload` and the
    finalize step. The record decides which path the finalizer checks and
    whether the upload endpoint accepts bytes for a hash at all.

Concurrency:
    The register is process-wide shared state. All access goes through a
    single lock so insert-if-absent is atomic across threads and event-loop
    workers; no method blocks on I/O while holding it.

Lifecycle:
    Records are not removed on commit; `mark_committed` flags them instead.
    `prune_older_than` implements the opt-in expiry window configured via
    TOKEN_IMAGE_UPLOAD_REGISTER_TTL_SECONDS and only drops uncommitted records,
    so a retried finalize keeps returning the committed id.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class PendingUploadRecord:
    sha256: str
    file_extension: str
    created_at: datetime
    committed: bool = False


class UploadRegister:
    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._records: Dict[str, PendingUploadRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def register(self, sha256: str, file_extension: str) -> PendingUploadRecord:
        """Insert a record unless one exists; return the stored record.

        A second call for the same hash keeps the original extension and
        timestamp, even when `file_extension` differs.
        """
        with self._lock:
            record = self._records.get(sha256)
            if record is None:
                record = PendingUploadRecord(sha256=sha256, file_extension=file_extension, created_at=self._clock())
                self._records[sha256] = record
            return record

    def get(self, sha256: str) -> Optional[PendingUploadRecord]:
        with self._lock:
            return self._records.get(sha256)

    def __contains__(self, sha256: object) -> bool:
        with self._lock:
            return sha256 in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def mark_committed(self, sha256: str) -> None:
        with self._lock:
            record = self._records.get(sha256)
            if record is not None and not record.committed:
                self._records[sha256] = replace(record, committed=True)

    def prune_older_than(self, max_age_seconds: int) -> int:
        """Drop uncommitted records older than `max_age_seconds`; return how many were removed."""
        if max_age_seconds <= 0:
            return 0
        cutoff = self._clock() - timedelta(seconds=max_age_seconds)
        with self._lock:
            expired = [
                sha for sha, rec in self._records.items() if not rec.committed and rec.created_at < cutoff
            ]
            for sha in expired:
                del self._records[sha]
        return len(expired)


__all__ = ["PendingUploadRecord", "UploadRegister"]
