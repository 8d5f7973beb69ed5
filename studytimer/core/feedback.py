from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

from studytimer.core.config import Technique
from studytimer.core.finalizer import CompletionReason, SessionDraft
from studytimer.core.logger import log


MAX_NOTES_LENGTH = 500
MAX_DISTRACTIONS = 50


class Mood(str, Enum):
    ENERGETIC = "energetic"
    NORMAL = "normal"
    TIRED = "tired"
    UNMOTIVATED = "unmotivated"
    STRESSED = "stressed"
    HAPPY = "happy"


@dataclass(frozen=True)
class SessionFeedback:
    quality: int
    mood: Mood = Mood.NORMAL
    distractions: int = 0
    notes: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.quality, bool) or not isinstance(self.quality, int) or not 1 <= self.quality <= 5:
            raise ValueError("Quality must be an integer between 1 and 5")
        if not isinstance(self.mood, Mood):
            try:
                object.__setattr__(self, "mood", Mood(self.mood))
            except ValueError:
                raise ValueError(f"Unknown mood {self.mood!r}") from None
        if not isinstance(self.distractions, int) or not 0 <= self.distractions <= MAX_DISTRACTIONS:
            raise ValueError(f"Distractions must be between 0 and {MAX_DISTRACTIONS}")
        notes = (self.notes or "").strip()
        if len(notes) > MAX_NOTES_LENGTH:
            raise ValueError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
        object.__setattr__(self, "notes", notes)


@dataclass(frozen=True)
class SessionRecord:
    subject: str
    duration_min: int
    started_at: datetime
    technique: Technique
    completion_reason: CompletionReason
    completed_cycles: int
    target_cycles: int
    quality: int
    mood: Mood
    distractions: int
    notes: str

    @classmethod
    def from_draft(cls, draft: SessionDraft, feedback: SessionFeedback) -> "SessionRecord":
        return cls(
            subject=draft.subject,
            duration_min=draft.worked_minutes,
            started_at=draft.started_at,
            technique=draft.technique,
            completion_reason=draft.completion_reason,
            completed_cycles=draft.completed_cycles,
            target_cycles=draft.target_cycles,
            quality=feedback.quality,
            mood=feedback.mood,
            distractions=feedback.distractions,
            notes=feedback.notes,
        )


class SessionStore(Protocol):
    def insert_session(self, record: SessionRecord) -> int:
        ...


class FeedbackGate:
    """Checkpoint between a finished run and the session store.

    A draft only becomes durable through `confirm`. A failed write keeps the
    draft pending so the caller can retry without re-running the session.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._pending: SessionDraft | None = None

    @property
    def pending(self) -> SessionDraft | None:
        return self._pending

    def submit(self, draft: SessionDraft) -> None:
        if not draft.needs_review:
            raise ValueError("Discarded drafts cannot be submitted for review")
        if self._pending is not None:
            raise ValueError(f"Draft for '{self._pending.subject}' is still awaiting review")
        self._pending = draft

    def confirm(self, feedback: SessionFeedback) -> int | None:
        if self._pending is None:
            log.info("Feedback confirmed without a pending draft, ignoring")
            return None
        record = SessionRecord.from_draft(self._pending, feedback)
        session_id = self._store.insert_session(record)
        log.info(f"Saved {record.duration_min} min '{record.subject}' session as #{session_id}")
        self._pending = None
        return session_id

    def discard(self) -> None:
        if self._pending is None:
            return
        log.info(f"Discarded draft for '{self._pending.subject}' ({self._pending.worked_minutes} min)")
        self._pending = None
