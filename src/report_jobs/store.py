from __future__ import annotations

import json
import sqlite3
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from .errors import JobError
from .models import INCOMPLETE_STATUSES, JobRun, StepRecord


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


class JobStore:
    """SQLite-backed durable state for background job runs.

    Three tables:
    - runs: one row per submitted event (run_id, name, payload, status)
    - steps: memoized step outputs keyed by (run_id, step_id)
    - deliveries: one row per run whose report email went out
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = str(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._create_schema()

    def _create_schema(self) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS runs (
                    run_id       TEXT PRIMARY KEY,
                    name         TEXT NOT NULL,
                    data_json    TEXT NOT NULL,
                    status       TEXT NOT NULL,
                    attempts     INTEGER NOT NULL DEFAULT 0,
                    error        TEXT,
                    result_json  TEXT,
                    created_at   TEXT NOT NULL,
                    updated_at   TEXT NOT NULL
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_runs_status ON runs (status)")
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS steps (
                    run_id       TEXT NOT NULL,
                    step_id      TEXT NOT NULL,
                    output_json  TEXT NOT NULL,
                    completed_at TEXT NOT NULL,
                    PRIMARY KEY (run_id, step_id)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS deliveries (
                    run_id       TEXT PRIMARY KEY,
                    recipient    TEXT NOT NULL,
                    delivered_at TEXT NOT NULL
                )
                """
            )
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def _row_to_run(self, row: sqlite3.Row, steps: List[StepRecord]) -> JobRun:
        return JobRun(
            run_id=row["run_id"],
            name=row["name"],
            data=json.loads(row["data_json"]),
            status=row["status"],
            attempts=row["attempts"],
            error=row["error"],
            result=json.loads(row["result_json"]) if row["result_json"] is not None else None,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            steps=steps,
        )

    def create_run(self, name: str, data: dict[str, Any]) -> JobRun:
        run_id = str(uuid.uuid4())
        now = _now()
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO runs (run_id, name, data_json, status, attempts, created_at, updated_at)
                VALUES (?, ?, ?, 'queued', 0, ?, ?)
                """,
                (run_id, name, json.dumps(data), now, now),
            )
        run = self.get_run(run_id)
        if run is None:
            raise JobError(f"Failed to store run {run_id}")
        return run

    def get_run(self, run_id: str) -> Optional[JobRun]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM runs WHERE run_id = ?", (run_id,)).fetchone()
            if row is None:
                return None
            step_rows = self._conn.execute(
                "SELECT * FROM steps WHERE run_id = ? ORDER BY completed_at, rowid",
                (run_id,),
            ).fetchall()
        steps = [
            StepRecord(
                step_id=s["step_id"],
                output=json.loads(s["output_json"]),
                completed_at=s["completed_at"],
            )
            for s in step_rows
        ]
        return self._row_to_run(row, steps)

    def list_incomplete(self) -> List[JobRun]:
        placeholders = ", ".join("?" for _ in INCOMPLETE_STATUSES)
        with self._lock:
            rows = self._conn.execute(
                f"SELECT run_id FROM runs WHERE status IN ({placeholders}) ORDER BY created_at",
                INCOMPLETE_STATUSES,
            ).fetchall()
        runs = [self.get_run(r["run_id"]) for r in rows]
        return [r for r in runs if r is not None]

    def start_attempt(self, run_id: str) -> int:
        """Mark the run running and return its attempt number."""
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE runs SET status = 'running', attempts = attempts + 1, updated_at = ? WHERE run_id = ?",
                (_now(), run_id),
            )
            row = self._conn.execute("SELECT attempts FROM runs WHERE run_id = ?", (run_id,)).fetchone()
        return int(row["attempts"]) if row else 0

    def finish_run(
        self,
        run_id: str,
        status: str,
        *,
        error: str | None = None,
        result: Any = None,
    ) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE runs SET status = ?, error = ?, result_json = ?, updated_at = ? WHERE run_id = ?",
                (
                    status,
                    error,
                    json.dumps(result) if result is not None else None,
                    _now(),
                    run_id,
                ),
            )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def get_step(self, run_id: str, step_id: str) -> Optional[StepRecord]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM steps WHERE run_id = ? AND step_id = ?",
                (run_id, step_id),
            ).fetchone()
        if row is None:
            return None
        return StepRecord(
            step_id=row["step_id"],
            output=json.loads(row["output_json"]),
            completed_at=row["completed_at"],
        )

    def save_step(self, run_id: str, step_id: str, output: Any) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO steps (run_id, step_id, output_json, completed_at)
                VALUES (?, ?, ?, ?)
                """,
                (run_id, step_id, json.dumps(output), _now()),
            )

    # ------------------------------------------------------------------
    # Deliveries
    # ------------------------------------------------------------------

    def has_delivery(self, run_id: str) -> bool:
        with self._lock:
            row = self._conn.execute("SELECT 1 FROM deliveries WHERE run_id = ?", (run_id,)).fetchone()
        return row is not None

    def record_delivery(self, run_id: str, recipient: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR IGNORE INTO deliveries (run_id, recipient, delivered_at) VALUES (?, ?, ?)",
                (run_id, recipient, _now()),
            )
