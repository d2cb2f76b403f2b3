"""Status rows for background poster generation jobs."""
from __future__ import annotations

import datetime as _dt
import logging
import sqlite3
import threading
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol

from posterai.config import get_settings
from posterai.services.database import Database, from_iso, get_database, to_iso, utcnow
from posterai.services.errors import JobNotFound

logger = logging.getLogger(__name__)

JOB_STATUSES = ("pending", "processing", "completed", "failed")
_MUTABLE_FIELDS = {"status", "progress", "image_url", "error"}
DEFAULT_MAX_AGE = _dt.timedelta(hours=1)


@dataclass
class PosterJob:
    id: str
    user_id: str
    status: str
    progress: int
    image_url: Optional[str]
    error: Optional[str]
    created_at: _dt.datetime
    updated_at: _dt.datetime


def _validate_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(changes) - _MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"cannot update job fields: {', '.join(sorted(unknown))}")
    if "status" in changes and changes["status"] not in JOB_STATUSES:
        raise ValueError(f"invalid job status {changes['status']!r}")
    if "progress" in changes:
        changes["progress"] = max(0, min(100, int(changes["progress"])))
    return changes


class JobStore(Protocol):
    def create(self, job_id: str, user_id: str) -> PosterJob:
        ...

    def get(self, job_id: str) -> Optional[PosterJob]:
        ...

    def update(self, job_id: str, **changes: Any) -> PosterJob:
        ...

    def cleanup(self, max_age: _dt.timedelta = DEFAULT_MAX_AGE) -> int:
        ...


class MemoryJobStore:
    def __init__(self) -> None:
        self._jobs: Dict[str, PosterJob] = {}
        self._lock = threading.Lock()

    def create(self, job_id: str, user_id: str) -> PosterJob:
        now = utcnow()
        job = PosterJob(job_id, user_id, "pending", 0, None, None, now, now)
        with self._lock:
            self._jobs[job_id] = job
        return replace(job)

    def get(self, job_id: str) -> Optional[PosterJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return replace(job) if job else None

    def update(self, job_id: str, **changes: Any) -> PosterJob:
        changes = _validate_changes(changes)
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFound(job_id)
            updated = replace(job, **changes, updated_at=utcnow())
            self._jobs[job_id] = updated
            return replace(updated)

    def cleanup(self, max_age: _dt.timedelta = DEFAULT_MAX_AGE) -> int:
        cutoff = utcnow() - max_age
        with self._lock:
            stale = [job_id for job_id, job in self._jobs.items() if job.created_at < cutoff]
            for job_id in stale:
                del self._jobs[job_id]
        return len(stale)


def _row_to_job(row: sqlite3.Row) -> PosterJob:
    return PosterJob(
        id=row["id"],
        user_id=row["user_id"],
        status=row["status"],
        progress=int(row["progress"]),
        image_url=row["image_url"],
        error=row["error"],
        created_at=from_iso(row["created_at"]),
        updated_at=from_iso(row["updated_at"]),
    )


class SqliteJobStore:
    def __init__(self, db: Database) -> None:
        self.db = db

    def create(self, job_id: str, user_id: str) -> PosterJob:
        now = to_iso(utcnow())
        with self.db.connect() as con:
            con.execute(
                "INSERT INTO jobs (id, user_id, status, progress, created_at, updated_at) VALUES (?, ?, 'pending', 0, ?, ?)",
                (job_id, user_id, now, now),
            )
        job = self.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def get(self, job_id: str) -> Optional[PosterJob]:
        with self.db.connect() as con:
            row = con.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return _row_to_job(row) if row else None

    def update(self, job_id: str, **changes: Any) -> PosterJob:
        changes = _validate_changes(changes)
        columns = sorted(changes)
        assignments = ", ".join(f"{col} = ?" for col in columns + ["updated_at"])
        params = [changes[col] for col in columns] + [to_iso(utcnow()), job_id]
        with self.db.connect() as con:
            cur = con.execute(f"UPDATE jobs SET {assignments} WHERE id = ?", params)
            if cur.rowcount == 0:
                raise JobNotFound(job_id)
        job = self.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def cleanup(self, max_age: _dt.timedelta = DEFAULT_MAX_AGE) -> int:
        cutoff = to_iso(utcnow() - max_age)
        with self.db.connect() as con:
            cur = con.execute("DELETE FROM jobs WHERE created_at < ?", (cutoff,))
            removed = cur.rowcount
        if removed:
            logger.info("removed %s expired jobs", removed)
        return removed


@lru_cache(maxsize=1)
def get_job_store() -> JobStore:
    backend = get_settings().jobs.backend
    if backend == "memory":
        return MemoryJobStore()
    return SqliteJobStore(get_database())
