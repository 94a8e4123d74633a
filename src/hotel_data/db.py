from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import dataclass, fields
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .models import Booking, Insight

_BOOKING_COLUMNS: tuple[str, ...] = tuple(Booking.model_fields)
_DATETIME_COLUMNS = {"check_in", "check_out", "created_at"}


def _iso(value: date | datetime | str) -> str:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None).isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    return value


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class BookingFilter:
    """Conjunction of booking predicates; ``None`` fields are ignored.

    ``*_from`` bounds are inclusive, ``*_before`` exclusive, ``check_out_after`` strict.
    """

    created_from: date | datetime | None = None
    created_before: date | datetime | None = None
    check_in_from: date | datetime | None = None
    check_in_before: date | datetime | None = None
    check_out_from: date | datetime | None = None
    check_out_before: date | datetime | None = None
    check_out_after: date | datetime | None = None
    booking_statuses: Sequence[str] | None = None
    exclude_booking_statuses: Sequence[str] | None = None
    payment_statuses: Sequence[str] | None = None
    guest_email: str | None = None

    def to_sql(self) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        comparisons = {
            "created_from": ("created_at", ">="),
            "created_before": ("created_at", "<"),
            "check_in_from": ("check_in", ">="),
            "check_in_before": ("check_in", "<"),
            "check_out_from": ("check_out", ">="),
            "check_out_before": ("check_out", "<"),
            "check_out_after": ("check_out", ">"),
        }
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name in comparisons:
                column, op = comparisons[f.name]
                clauses.append(f"{column} {op} ?")
                params.append(_iso(value))
            elif f.name == "guest_email":
                clauses.append("guest_email = ?")
                params.append(value.strip().lower())
            else:
                column = "payment_status" if f.name == "payment_statuses" else "booking_status"
                op = "NOT IN" if f.name.startswith("exclude") else "IN"
                values = list(value)
                if not values:
                    # Empty IN matches nothing; empty NOT IN matches everything.
                    if op == "IN":
                        clauses.append("0")
                    continue
                clauses.append(f"{column} {op} ({', '.join('?' for _ in values)})")
                params.extend(values)
        where = " AND ".join(clauses) if clauses else "1"
        return where, params


class HotelStore:
    """SQLite-backed store for bookings and assistant insights.

    Stands in for the hotel's document database; tool handlers and the
    report workflow only ever talk to this class.
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
                CREATE TABLE IF NOT EXISTS bookings (
                    id                TEXT PRIMARY KEY,
                    guest_email       TEXT NOT NULL,
                    guest_first_name  TEXT NOT NULL,
                    guest_last_name   TEXT NOT NULL,
                    guest_phone       TEXT NOT NULL DEFAULT '',
                    guest_country     TEXT NOT NULL DEFAULT '',
                    room_name         TEXT NOT NULL,
                    room_number       TEXT,
                    price_per_night   REAL NOT NULL DEFAULT 0,
                    number_of_rooms   INTEGER NOT NULL DEFAULT 1,
                    check_in          TEXT NOT NULL,
                    check_out         TEXT NOT NULL,
                    nights            INTEGER NOT NULL DEFAULT 1,
                    adults            INTEGER NOT NULL DEFAULT 1,
                    children          INTEGER NOT NULL DEFAULT 0,
                    total_amount      REAL NOT NULL DEFAULT 0,
                    payment_status    TEXT NOT NULL,
                    payment_method    TEXT NOT NULL DEFAULT '',
                    payment_reference TEXT,
                    booking_status    TEXT NOT NULL,
                    booking_source    TEXT NOT NULL DEFAULT 'website',
                    special_requests  TEXT,
                    created_at        TEXT NOT NULL
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_bookings_created_at ON bookings (created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_bookings_check_in ON bookings (check_in)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_bookings_check_out ON bookings (check_out)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_bookings_guest_email ON bookings (guest_email)")
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS insights (
                    id          TEXT PRIMARY KEY,
                    category    TEXT NOT NULL,
                    content     TEXT NOT NULL,
                    tags_json   TEXT NOT NULL DEFAULT '[]',
                    importance  INTEGER NOT NULL DEFAULT 5,
                    source      TEXT,
                    created_at  TEXT NOT NULL
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_insights_category ON insights (category)")
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def ping(self) -> bool:
        with self._lock:
            self._conn.execute("SELECT 1").fetchone()
        return True

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    @staticmethod
    def _booking_params(booking: Booking) -> list[Any]:
        data = booking.model_dump()
        data["guest_email"] = data["guest_email"].strip().lower()
        return [_iso(data[c]) if c in _DATETIME_COLUMNS else data[c] for c in _BOOKING_COLUMNS]

    @staticmethod
    def _row_to_booking(row: sqlite3.Row) -> Booking:
        return Booking(**{c: row[c] for c in _BOOKING_COLUMNS})

    def add_booking(self, booking: Booking) -> Booking:
        placeholders = ", ".join("?" for _ in _BOOKING_COLUMNS)
        with self._lock, self._conn:
            self._conn.execute(
                f"INSERT INTO bookings ({', '.join(_BOOKING_COLUMNS)}) VALUES ({placeholders})",
                self._booking_params(booking),
            )
        return booking

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return self._row_to_booking(row) if row else None

    def find_booking_by_reference(self, reference: str) -> Optional[Booking]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM bookings WHERE payment_reference = ? ORDER BY created_at DESC LIMIT 1",
                (reference,),
            ).fetchone()
        return self._row_to_booking(row) if row else None

    def list_bookings(
        self,
        where: BookingFilter | None = None,
        *,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> List[Booking]:
        clause, params = (where or BookingFilter()).to_sql()
        sql = f"SELECT * FROM bookings WHERE {clause} ORDER BY created_at {'DESC' if newest_first else 'ASC'}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_booking(r) for r in rows]

    def count_bookings(self, where: BookingFilter | None = None) -> int:
        clause, params = (where or BookingFilter()).to_sql()
        with self._lock:
            row = self._conn.execute(f"SELECT COUNT(*) FROM bookings WHERE {clause}", params).fetchone()
        return int(row[0])

    def sum_booking_amounts(self, where: BookingFilter | None = None) -> tuple[int, float]:
        """Return (count, total_amount) for matching bookings."""
        clause, params = (where or BookingFilter()).to_sql()
        with self._lock:
            row = self._conn.execute(
                f"SELECT COUNT(*), COALESCE(SUM(total_amount), 0) FROM bookings WHERE {clause}",
                params,
            ).fetchone()
        return int(row[0]), float(row[1])

    def search_bookings(self, query: str, status: str | None = None, limit: int = 10) -> List[Booking]:
        pattern = f"%{_escape_like(query.strip())}%"
        columns = (
            "guest_first_name",
            "guest_last_name",
            "guest_email",
            "guest_phone",
            "payment_reference",
            "guest_first_name || ' ' || guest_last_name",
        )
        sql = "SELECT * FROM bookings WHERE (" + " OR ".join(
            f"{c} LIKE ? ESCAPE '\\'" for c in columns
        ) + ")"
        params: list[Any] = [pattern] * len(columns)
        if status and status != "all":
            sql += " AND booking_status = ?"
            params.append(status)
        sql += " ORDER BY created_at DESC LIMIT ?"
        params.append(int(limit))
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_booking(r) for r in rows]

    def update_booking(
        self,
        booking_id: str,
        changes: Dict[str, Any],
        note: str | None = None,
    ) -> Optional[Booking]:
        """Apply ``changes`` (and append ``note`` to special requests) in one transaction.

        The merged record is validated before anything is written, so an invalid
        status leaves the stored booking untouched. Returns None if not found.
        """
        unknown = set(changes) - set(_BOOKING_COLUMNS) - {"id"}
        if unknown:
            raise ValueError(f"Unknown booking fields: {', '.join(sorted(unknown))}")
        with self._lock, self._conn:
            row = self._conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
            if row is None:
                return None
            current = self._row_to_booking(row).model_dump()
            current.update(changes)
            if note:
                current["special_requests"] = (current.get("special_requests") or "") + f"\n{note}"
            updated = Booking(**current)
            assignments = ", ".join(f"{c} = ?" for c in _BOOKING_COLUMNS if c != "id")
            params = [p for c, p in zip(_BOOKING_COLUMNS, self._booking_params(updated)) if c != "id"]
            self._conn.execute(f"UPDATE bookings SET {assignments} WHERE id = ?", [*params, booking_id])
        return updated

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def add_insight(self, insight: Insight) -> Insight:
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO insights (id, category, content, tags_json, importance, source, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    insight.id,
                    insight.category,
                    insight.content,
                    json.dumps(insight.tags),
                    insight.importance,
                    insight.source,
                    _iso(insight.created_at),
                ),
            )
        return insight

    def search_insights(self, query: str, category: str | None = None, limit: int = 5) -> List[Insight]:
        pattern = f"%{_escape_like(query.strip())}%"
        sql = "SELECT * FROM insights WHERE (content LIKE ? ESCAPE '\\' OR tags_json LIKE ? ESCAPE '\\')"
        params: list[Any] = [pattern, pattern]
        if category:
            sql += " AND category = ?"
            params.append(category)
        sql += " ORDER BY importance DESC, created_at DESC LIMIT ?"
        params.append(int(limit))
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [
            Insight(
                id=r["id"],
                category=r["category"],
                content=r["content"],
                tags=json.loads(r["tags_json"] or "[]"),
                importance=r["importance"],
                source=r["source"],
                created_at=r["created_at"],
            )
            for r in rows
        ]
