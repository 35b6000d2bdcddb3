"""
SQLite Event Store - Appointment Reminders and Conversation States
===================================================================

Holds the appointment rows the reminder job reads (and flags as sent), the
SI/NO confirmations customers reply with, and optionally the conversation
states of the interest flow.
"""

import sqlite3
import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from ...domain.conversation import ConversationState, ConversationStore
from ...domain.reminders import (
    ReminderEvent,
    minutes_until,
    national_number,
    parse_schedule,
)

logger = logging.getLogger(__name__)

DATABASE_FILE = "outreach.db"


class EventStoreError(Exception):
    """Raised when the event store cannot be opened or queried."""
    pass


def _date_filter(days: Iterable[date]) -> Tuple[str, List[str]]:
    """
    SQL fragment matching scheduled_date on any of `days`, stored either as
    "YYYY-MM-DD" (optionally followed by a time) or as "YYYYMMDD".
    """
    days = sorted(set(days))
    iso = [d.isoformat() for d in days]
    compact = [d.strftime("%Y%m%d") for d in days]
    placeholders = ", ".join("?" for _ in days)
    clause = (
        f"(substr(trim(scheduled_date), 1, 10) IN ({placeholders})"
        f" OR trim(scheduled_date) IN ({placeholders}))"
    )
    return clause, iso + compact


class EventStoreSession:
    """
    One open connection to the event store.

    Obtained from Database.session(); every write commits immediately so a
    sent flag is durable before the caller moves on to the next row.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def fetch_due_reminders(
        self,
        categories: Iterable[int],
        now: datetime,
        window_min: int,
        window_max: int,
    ) -> List[ReminderEvent]:
        """
        Unsent reminders of an allowed category whose appointment is
        between window_min and window_max minutes (inclusive) after now.

        SQL narrows the rows to the calendar days the window touches; the
        minute check runs on what is left.
        """
        category_ids = sorted(set(categories))
        if not category_ids:
            return []

        naive_now = now.replace(tzinfo=None, second=0, microsecond=0)
        days = {
            (naive_now + timedelta(minutes=window_min)).date(),
            (naive_now + timedelta(minutes=window_max)).date(),
        }
        date_clause, date_params = _date_filter(days)

        placeholders = ", ".join("?" for _ in category_ids)
        rows = self._conn.execute(
            f"""SELECT * FROM reminder_events
                WHERE category_id IN ({placeholders})
                  AND (sent = 0 OR sent IS NULL)
                  AND {date_clause}
                ORDER BY id""",
            category_ids + date_params,
        ).fetchall()

        due = []
        for row in rows:
            event = _row_to_event(row)
            scheduled = parse_schedule(event.scheduled_date, event.scheduled_time)
            if scheduled is None:
                continue
            if window_min <= minutes_until(scheduled, naive_now) <= window_max:
                due.append(event)
        return due

    def mark_sent(self, event_id: int, sent_at: Optional[datetime] = None) -> None:
        """Flag a reminder as sent and commit."""
        stamp = (sent_at or datetime.now()).isoformat(timespec="seconds")
        self._conn.execute(
            "UPDATE reminder_events SET sent = 1, sent_at = ? WHERE id = ?",
            (stamp, event_id),
        )
        self._conn.commit()

    def record_confirmation(
        self,
        phone: str,
        answer: str,
        today: date,
        event_id: Optional[int] = None,
        country_code: str = "",
    ) -> Optional[int]:
        """
        Store a SI/NO answer on exactly one sent reminder.

        Phones are compared without `country_code`, so a row stored as
        "+57 300 111 2233" matches a reply from "3001112233".
        With event_id the row must belong to `phone`. Without it, the most
        recently sent reminder for `phone` scheduled `today` is chosen.
        Returns the updated row id, or None when nothing matched.
        """
        phone_national = national_number(phone, country_code)
        if not phone_national:
            return None

        if event_id is not None:
            rows = self._conn.execute(
                "SELECT * FROM reminder_events WHERE id = ? AND sent = 1",
                (event_id,),
            ).fetchall()
        else:
            date_clause, date_params = _date_filter([today])
            rows = self._conn.execute(
                f"""SELECT * FROM reminder_events
                    WHERE sent = 1 AND {date_clause}
                    ORDER BY sent_at DESC, id DESC""",
                date_params,
            ).fetchall()

        target = None
        for row in rows:
            if national_number(row["contact_phone"] or "", country_code) == phone_national:
                target = row["id"]
                break

        if target is None:
            return None

        self._conn.execute(
            "UPDATE reminder_events SET confirmed = ? WHERE id = ?",
            (answer, target),
        )
        self._conn.commit()
        return target


class Database:
    """
    SQLite database for the outreach engine.

    Usage:
        db = Database()
        db.init()

        db.add_reminder_event(category_id=1, category="Cita", subject_name="Ana",
                              contact_phone="3001112233",
                              scheduled_date="2025-03-10", scheduled_time="14:30")

        with db.session() as session:
            due = session.fetch_due_reminders({1}, datetime.now(), 57, 63)
    """

    def __init__(self, db_path: str = DATABASE_FILE):
        self.db_path = str(db_path)

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise EventStoreError(f"Cannot open event store {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    @contextmanager
    def session(self):
        """Open a store session; the connection is closed on every exit path."""
        with self._get_connection() as conn:
            yield EventStoreSession(conn)

    def init(self):
        """Initialize database tables."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reminder_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    category_id INTEGER NOT NULL,
                    category TEXT DEFAULT '',
                    subject_name TEXT DEFAULT '',
                    contact_phone TEXT DEFAULT '',
                    scheduled_date TEXT DEFAULT '',
                    scheduled_time TEXT DEFAULT '',
                    sent INTEGER DEFAULT 0,
                    confirmed TEXT DEFAULT '',
                    sent_at TIMESTAMP,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # Migrations for older databases
            self._migrate_reminder_events_table(conn)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS conversation_states (
                    contact_id TEXT PRIMARY KEY,
                    state TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            logger.info(f"Database initialized: {self.db_path}")

    def _migrate_reminder_events_table(self, conn):
        """Add missing columns to existing reminder_events table."""
        existing = {row[1] for row in conn.execute("PRAGMA table_info(reminder_events)").fetchall()}

        migrations = {
            "confirmed": "ALTER TABLE reminder_events ADD COLUMN confirmed TEXT DEFAULT ''",
            "sent_at": "ALTER TABLE reminder_events ADD COLUMN sent_at TIMESTAMP",
        }

        for col, sql in migrations.items():
            if col not in existing:
                conn.execute(sql)
                logger.info(f"Migrated: added '{col}' column to reminder_events")

    # ── Reminder events ────────────────────────────────────────────

    def add_reminder_event(
        self,
        category_id: int,
        category: str,
        subject_name: str,
        contact_phone: str,
        scheduled_date: str,
        scheduled_time: str,
    ) -> int:
        """Insert a new appointment row."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """INSERT INTO reminder_events
                   (category_id, category, subject_name, contact_phone, scheduled_date, scheduled_time)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (category_id, category, subject_name, contact_phone, scheduled_date, scheduled_time),
            )
            return cursor.lastrowid

    def get_reminder_event(self, event_id: int) -> Optional[ReminderEvent]:
        """Get reminder by ID."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM reminder_events WHERE id = ?", (event_id,)
            ).fetchone()
            return _row_to_event(row) if row else None

    def get_stats(self) -> dict:
        """Reminder counters for the status endpoint."""
        with self._get_connection() as conn:
            total = conn.execute("SELECT COUNT(*) FROM reminder_events").fetchone()[0]
            sent = conn.execute("SELECT COUNT(*) FROM reminder_events WHERE sent = 1").fetchone()[0]
            confirmed = conn.execute(
                "SELECT COUNT(*) FROM reminder_events WHERE confirmed = 'SI'"
            ).fetchone()[0]
            declined = conn.execute(
                "SELECT COUNT(*) FROM reminder_events WHERE confirmed = 'NO'"
            ).fetchone()[0]

            return {
                "total": total,
                "sent": sent,
                "confirmed": confirmed,
                "declined": declined,
            }


class SqliteConversationStore(ConversationStore):
    """Conversation states that survive restarts."""

    def __init__(self, database: Database):
        self._db = database

    def get(self, contact_id: str) -> ConversationState:
        with self._db._get_connection() as conn:
            row = conn.execute(
                "SELECT state FROM conversation_states WHERE contact_id = ?", (contact_id,)
            ).fetchone()
        return ConversationState(row["state"]) if row else ConversationState.UNSET

    def resolve(self, contact_id: str, state: ConversationState) -> bool:
        if not state.is_resolved:
            raise ValueError("Cannot resolve a contact to UNSET")
        # INSERT OR IGNORE: an existing row means the contact is already resolved
        with self._db._get_connection() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO conversation_states (contact_id, state) VALUES (?, ?)",
                (contact_id, state.value),
            )
            return cursor.rowcount == 1

    def counts(self) -> Dict[str, int]:
        result = {ConversationState.POSITIVE.value: 0, ConversationState.NEGATIVE.value: 0}
        with self._db._get_connection() as conn:
            rows = conn.execute(
                "SELECT state, COUNT(*) AS n FROM conversation_states GROUP BY state"
            ).fetchall()
        for row in rows:
            result[row["state"]] = row["n"]
        return result


def _row_to_event(row: sqlite3.Row) -> ReminderEvent:
    """Convert database row to ReminderEvent object."""
    return ReminderEvent(
        id=row["id"],
        category_id=row["category_id"],
        category=row["category"] or "",
        subject_name=row["subject_name"] or "",
        contact_phone=row["contact_phone"] or "",
        scheduled_date=row["scheduled_date"] or "",
        scheduled_time=row["scheduled_time"] or "",
        sent=bool(row["sent"]),
        confirmed=row["confirmed"] or "",
        sent_at=row["sent_at"] or "",
    )
