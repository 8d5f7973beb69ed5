import sqlite3
from datetime import datetime

import pytest

from studytimer.core.config import Technique
from studytimer.core.errors import PersistenceError
from studytimer.core.feedback import Mood, SessionRecord
from studytimer.core.finalizer import CompletionReason
from studytimer.data.storage import Storage


def make_record(**overrides) -> SessionRecord:
    values = {
        "subject": "math",
        "duration_min": 25,
        "started_at": datetime(2026, 1, 1, 10, 0).astimezone(),
        "technique": Technique.POMODORO,
        "completion_reason": CompletionReason.NATURAL,
        "completed_cycles": 1,
        "target_cycles": 1,
        "quality": 4,
        "mood": Mood.ENERGETIC,
        "distractions": 2,
        "notes": "derivatives",
    }
    values.update(overrides)
    return SessionRecord(**values)


def test_init_db_creates_tables(tmp_path) -> None:
    db = tmp_path / "studytimer.db"
    storage = Storage(db)
    storage.init_db()
    assert db.exists()

    with storage._connect() as conn:  # noqa: SLF001 - tests may inspect DB directly
        tables = {row["name"] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert {"schema_version", "sessions", "settings"} <= tables


def test_set_get_setting(tmp_path) -> None:
    storage = Storage(tmp_path / "studytimer.db")
    storage.init_db()
    storage.set_setting("confirm_stop", False)
    storage.set_setting("session_config", {"subject": "math"})

    assert storage.get_setting("confirm_stop") is False
    assert storage.get_setting("session_config") == {"subject": "math"}
    assert storage.get_setting("missing", "x") == "x"


def test_insert_and_list_sessions(tmp_path) -> None:
    storage = Storage(tmp_path / "studytimer.db")
    storage.init_db()

    first = storage.insert_session(make_record())
    second = storage.insert_session(make_record(subject="chemistry", completion_reason=CompletionReason.MANUAL_STOP))

    rows = storage.list_sessions()
    assert [row.id for row in rows] == [second, first]
    assert rows[0].subject == "chemistry"
    assert rows[0].completion_reason == "manual-stop"
    assert rows[1].technique == "Pomodoro"
    assert rows[1].mood == "energetic"
    assert rows[1].duration_min == 25
    assert rows[1].notes == "derivatives"
    assert rows[1].started_at.startswith("2026-01-01T10:00:00")


def test_insert_without_schema_raises_persistence_error(tmp_path) -> None:
    storage = Storage(tmp_path / "studytimer.db")

    with pytest.raises(PersistenceError) as excinfo:
        storage.insert_session(make_record())

    assert excinfo.value.retryable is True
    assert isinstance(excinfo.value.__cause__, sqlite3.Error)


def test_constraint_violation_raises_persistence_error(tmp_path) -> None:
    storage = Storage(tmp_path / "studytimer.db")
    storage.init_db()

    with pytest.raises(PersistenceError):
        storage.insert_session(make_record(duration_min=0))

    assert storage.list_sessions() == []
