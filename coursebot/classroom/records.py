"""
UserRecordStore - Persist coarse per-user state in SQLite.

Stores, per chat user:
- Profile fields (username, first/last name)
- Resume cursor into the course
- Last activity timestamp (for "welcome back" and reminders)

Not authoritative for navigation; the in-memory session is.
"""

import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from coursebot.schemas import UserProfile, UserRecord


DEFAULT_RECORDS_DB = Path("data") / "bot.db"


class UserRecordStore:
    """
    User records in a SQLite database.

    Each method opens its own connection, so the store can be shared by
    concurrent event handlers.
    """

    def __init__(self, db_path: Optional[Path] = None, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize record store.

        Args:
            db_path: Path to the database file (default: data/bot.db)
            clock: Source of the current time
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_RECORDS_DB
        self.clock = clock
        self._ensure_database()

    def _ensure_database(self):
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS users (
                    user_id INTEGER PRIMARY KEY,
                    username TEXT,
                    first_name TEXT,
                    last_name TEXT,
                    current_step INTEGER NOT NULL DEFAULT 0,
                    last_activity TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_last_activity
                ON users(last_activity);
            """)
            conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _to_record(row: sqlite3.Row) -> UserRecord:
        return UserRecord(
            user_id=row["user_id"],
            username=row["username"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            current_step=row["current_step"],
            last_activity=datetime.fromisoformat(row["last_activity"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def get(self, user_id: int) -> Optional[UserRecord]:
        """Get a user record without touching its activity timestamp."""
        conn = self._get_connection()
        try:
            cursor = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,))
            row = cursor.fetchone()
            return self._to_record(row) if row else None
        finally:
            conn.close()

    def get_or_create(self, user_id: int, profile: Optional[UserProfile] = None) -> UserRecord:
        """
        Get a user record, creating it on first contact.

        The returned record carries the last activity from *before* this
        call; the stored timestamp is then moved to now.
        """
        profile = profile or UserProfile()
        conn = self._get_connection()
        try:
            now = self.clock().isoformat()
            row = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone()
            if row:
                conn.execute(
                    "UPDATE users SET last_activity = ? WHERE user_id = ?",
                    (now, user_id)
                )
                conn.commit()
                return self._to_record(row)

            conn.execute(
                """INSERT INTO users (user_id, username, first_name, last_name,
                                      current_step, last_activity, created_at)
                   VALUES (?, ?, ?, ?, 0, ?, ?)""",
                (user_id, profile.username, profile.first_name, profile.last_name, now, now)
            )
            conn.commit()
            row = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone()
            return self._to_record(row)
        finally:
            conn.close()

    def update_cursor(self, user_id: int, cursor: int):
        """Persist the resume cursor and bump last activity."""
        conn = self._get_connection()
        try:
            now = self.clock().isoformat()
            conn.execute(
                """INSERT INTO users (user_id, current_step, last_activity, created_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(user_id) DO UPDATE SET
                     current_step = ?,
                     last_activity = ?""",
                (user_id, cursor, now, now, cursor, now)
            )
            conn.commit()
        finally:
            conn.close()

    def get_inactive_users(self, days: int = 3) -> list[UserRecord]:
        """Get users with a resume point whose last activity is older than `days`."""
        conn = self._get_connection()
        try:
            cutoff = (self.clock() - timedelta(days=days)).isoformat()
            cursor = conn.execute(
                """SELECT * FROM users
                   WHERE last_activity < ? AND current_step > 0
                   ORDER BY last_activity""",
                (cutoff,)
            )
            return [self._to_record(row) for row in cursor.fetchall()]
        finally:
            conn.close()
