from __future__ import annotations

"""SQLite session store: finished study sessions and application settings."""

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from studytimer.core.errors import PersistenceError
from studytimer.core.feedback import SessionRecord
from studytimer.core.logger import log


SCHEMA_VERSION = 1


@dataclass(frozen=True)
class SessionRow:
    id: int
    subject: str
    duration_min: int
    started_at: str
    technique: str
    completion_reason: str
    completed_cycles: int
    target_cycles: int
    quality: int
    mood: str
    distractions: int
    notes: str
    saved_at: str


class Storage:
    """Wraps the SQLite connection and its transactional operations."""
    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode = WAL;")
        except sqlite3.DatabaseError:
            pass
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Creates the tables on first launch."""
        with self._transaction() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if not row:
                conn.execute("INSERT INTO schema_version(version) VALUES (?)", (SCHEMA_VERSION,))
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions(
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subject TEXT NOT NULL,
                    duration_min INTEGER NOT NULL CHECK(duration_min >= 1),
                    started_at TEXT NOT NULL,
                    technique TEXT NOT NULL,
                    completion_reason TEXT NOT NULL,
                    completed_cycles INTEGER NOT NULL DEFAULT 0,
                    target_cycles INTEGER NOT NULL DEFAULT 1,
                    quality INTEGER NOT NULL CHECK(quality BETWEEN 1 AND 5),
                    mood TEXT NOT NULL,
                    distractions INTEGER NOT NULL DEFAULT 0,
                    notes TEXT NOT NULL DEFAULT '',
                    saved_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings(
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )
        log.info(f"Initialized session store at '{self.db_path}'")

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if not row:
            return default
        raw = row["value"]
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return raw

    def set_setting(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, payload),
            )

    def insert_session(self, record: SessionRecord) -> int:
        saved_at = datetime.now().astimezone().isoformat(timespec="seconds")
        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO sessions(
                        subject, duration_min, started_at, technique, completion_reason,
                        completed_cycles, target_cycles, quality, mood, distractions, notes, saved_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.subject,
                        record.duration_min,
                        record.started_at.isoformat(timespec="seconds"),
                        record.technique.value,
                        record.completion_reason.value,
                        record.completed_cycles,
                        record.target_cycles,
                        record.quality,
                        record.mood.value,
                        record.distractions,
                        record.notes,
                        saved_at,
                    ),
                )
                return int(cursor.lastrowid)
        except sqlite3.Error as exc:
            log.error(f"Could not save session for '{record.subject}' to '{self.db_path}': {exc}")
            raise PersistenceError(f"Session could not be saved: {exc}") from exc

    def list_sessions(self, limit: int = 100) -> list[SessionRow]:
        """Returns the latest sessions, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, subject, duration_min, started_at, technique, completion_reason,
                       completed_cycles, target_cycles, quality, mood, distractions, notes, saved_at
                FROM sessions ORDER BY id DESC LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [
            SessionRow(
                id=row["id"],
                subject=row["subject"],
                duration_min=row["duration_min"],
                started_at=row["started_at"],
                technique=row["technique"],
                completion_reason=row["completion_reason"],
                completed_cycles=row["completed_cycles"],
                target_cycles=row["target_cycles"],
                quality=row["quality"],
                mood=row["mood"],
                distractions=row["distractions"],
                notes=row["notes"],
                saved_at=row["saved_at"],
            )
            for row in rows
        ]
