from __future__ import annotations

import contextlib
import json
import logging
import os
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Any

from chaincv.schemas.resume import Analysis, Resume, ResumeStatus

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    def __init__(self, message: str, *, code: str = "store_error"):
        super().__init__(message)
        self.code = code


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class LifecycleStore:
    """Durable Resume/Analysis records shared by the pipeline and the status routes.

    One sqlite connection is shared across worker threads; every statement runs
    under ``_lock``. Writes that must be observed together (Analysis insert plus
    the COMPLETED flip, or the FAILED flip plus Analysis cleanup) run in a
    single transaction.
    """

    def __init__(self, db_path: str, *, busy_timeout_s: float = 5.0):
        self._db_path = db_path
        self._busy_timeout_s = busy_timeout_s
        self._lock = threading.Lock()
        with self._db_errors():
            self._conn = self._connect()

    @staticmethod
    @contextlib.contextmanager
    def _db_errors():
        # Callers only ever see StoreError, never a raw sqlite3 exception.
        try:
            yield
        except sqlite3.Error as exc:
            raise StoreError(f"Database error: {exc}", code="db_error") from exc

    def _connect(self) -> sqlite3.Connection:
        if self._db_path != ":memory:":
            directory = os.path.dirname(self._db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

        conn = sqlite3.connect(
            self._db_path,
            check_same_thread=False,
            timeout=self._busy_timeout_s,
            isolation_level=None,
        )
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_s * 1000)};")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS resumes (
                id TEXT PRIMARY KEY,
                original_name TEXT NOT NULL,
                file_path TEXT NOT NULL,
                owner_key TEXT,
                status TEXT NOT NULL,
                error TEXT,
                upload_date TEXT NOT NULL,
                completed_at TEXT,
                failed_at TEXT
            );
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_resumes_owner_key
            ON resumes (owner_key, upload_date);
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS analyses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                resume_id TEXT NOT NULL,
                analysis_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_analyses_resume_id
            ON analyses (resume_id, id);
            """
        )
        return conn

    def close(self) -> None:
        with self._lock, self._db_errors():
            self._conn.close()

    @staticmethod
    def _row_to_resume(row: tuple) -> Resume:
        return Resume(
            id=row[0],
            original_name=row[1],
            file_path=row[2],
            owner_key=row[3],
            status=ResumeStatus(row[4]),
            error=row[5],
            upload_date=datetime.fromisoformat(row[6]),
            completed_at=_parse_ts(row[7]),
            failed_at=_parse_ts(row[8]),
        )

    @staticmethod
    def _row_to_analysis(row: tuple) -> Analysis:
        return Analysis(
            id=row[0],
            resume_id=row[1],
            analysis_data=json.loads(row[2]) if row[2] else {},
            created_at=datetime.fromisoformat(row[3]),
        )

    def create_resume(self, *, original_name: str, file_path: str, owner_key: str | None = None) -> Resume:
        resume = Resume(
            id=uuid.uuid4().hex,
            original_name=original_name,
            file_path=file_path,
            owner_key=owner_key,
            status=ResumeStatus.UPLOADED,
            upload_date=_utc_now(),
        )
        with self._lock, self._db_errors():
            self._conn.execute(
                """
                INSERT INTO resumes (id, original_name, file_path, owner_key, status, upload_date)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    resume.id,
                    resume.original_name,
                    resume.file_path,
                    resume.owner_key,
                    resume.status.value,
                    resume.upload_date.isoformat(),
                ),
            )
        return resume

    _RESUME_COLUMNS = (
        "id, original_name, file_path, owner_key, status, error, upload_date, completed_at, failed_at"
    )

    def get_resume(self, resume_id: str) -> Resume | None:
        with self._lock, self._db_errors():
            row = self._conn.execute(
                f"SELECT {self._RESUME_COLUMNS} FROM resumes WHERE id = ?",
                (resume_id,),
            ).fetchone()
        return self._row_to_resume(row) if row else None

    def find_resume_by_owner(self, owner_key: str) -> Resume | None:
        # Most recent upload wins when an owner has several resumes.
        with self._lock, self._db_errors():
            row = self._conn.execute(
                f"""
                SELECT {self._RESUME_COLUMNS} FROM resumes
                WHERE owner_key = ?
                ORDER BY upload_date DESC
                LIMIT 1
                """,
                (owner_key,),
            ).fetchone()
        return self._row_to_resume(row) if row else None

    def _update_status(self, resume_id: str, sql: str, params: tuple[Any, ...]) -> None:
        with self._lock, self._db_errors():
            cur = self._conn.execute(sql, params)
        if not cur.rowcount:
            raise StoreError(f"Resume not found: {resume_id}", code="not_found")

    def mark_processing(self, resume_id: str) -> None:
        self._update_status(
            resume_id,
            "UPDATE resumes SET status = ? WHERE id = ?",
            (ResumeStatus.PROCESSING.value, resume_id),
        )

    def complete_with_analysis(self, resume_id: str, analysis_data: dict[str, Any]) -> Analysis:
        """Insert the Analysis, then flip the Resume to COMPLETED, atomically."""
        created_at = _utc_now()
        payload_json = json.dumps(analysis_data, ensure_ascii=False)
        with self._lock, self._db_errors():
            cursor = self._conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                cursor.execute(
                    """
                    INSERT INTO analyses (resume_id, analysis_json, created_at)
                    VALUES (?, ?, ?)
                    """,
                    (resume_id, payload_json, created_at.isoformat()),
                )
                analysis_id = cursor.lastrowid
                cursor.execute(
                    """
                    UPDATE resumes SET status = ?, error = NULL, completed_at = ?
                    WHERE id = ?
                    """,
                    (ResumeStatus.COMPLETED.value, created_at.isoformat(), resume_id),
                )
                if not cursor.rowcount:
                    raise StoreError(f"Resume not found: {resume_id}", code="not_found")
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

        return Analysis(
            id=int(analysis_id),
            resume_id=resume_id,
            analysis_data=analysis_data,
            created_at=created_at,
        )

    def mark_failed(self, resume_id: str, error: str) -> None:
        """Flip the Resume to FAILED and drop any Analysis left from earlier runs."""
        failed_at = _utc_now().isoformat()
        with self._lock, self._db_errors():
            cursor = self._conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                cursor.execute(
                    "UPDATE resumes SET status = ?, error = ?, failed_at = ? WHERE id = ?",
                    (ResumeStatus.FAILED.value, error, failed_at, resume_id),
                )
                if not cursor.rowcount:
                    raise StoreError(f"Resume not found: {resume_id}", code="not_found")
                cursor.execute("DELETE FROM analyses WHERE resume_id = ?", (resume_id,))
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def reset_for_retry(self, resume_id: str) -> Resume:
        """Move a FAILED resume back to UPLOADED so the workflow can run again."""
        with self._lock, self._db_errors():
            cur = self._conn.execute(
                """
                UPDATE resumes SET status = ?, error = NULL, failed_at = NULL
                WHERE id = ? AND status = ?
                """,
                (ResumeStatus.UPLOADED.value, resume_id, ResumeStatus.FAILED.value),
            )
        if not cur.rowcount:
            raise StoreError(f"Resume {resume_id} is not in FAILED state", code="invalid_state")
        resume = self.get_resume(resume_id)
        if resume is None:  # pragma: no cover - row was just updated
            raise StoreError(f"Resume not found: {resume_id}", code="not_found")
        return resume

    def get_latest_analysis(self, resume_id: str) -> Analysis | None:
        with self._lock, self._db_errors():
            row = self._conn.execute(
                """
                SELECT id, resume_id, analysis_json, created_at FROM analyses
                WHERE resume_id = ?
                ORDER BY id DESC
                LIMIT 1
                """,
                (resume_id,),
            ).fetchone()
        return self._row_to_analysis(row) if row else None

    def list_analyses(self, resume_id: str) -> list[Analysis]:
        with self._lock, self._db_errors():
            rows = self._conn.execute(
                """
                SELECT id, resume_id, analysis_json, created_at FROM analyses
                WHERE resume_id = ?
                ORDER BY id
                """,
                (resume_id,),
            ).fetchall()
        return [self._row_to_analysis(row) for row in rows]
