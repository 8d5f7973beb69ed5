from __future__ import annotations

"""Turns a finished run into a draft session record."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from studytimer.core.config import SessionConfig, Technique
from studytimer.core.accumulator import worked_minutes
from studytimer.core.logger import log
from studytimer.core.timer import StudyTimer


class FinalizeTrigger(str, Enum):
    NATURAL = "natural"
    MANUAL_STOP = "manual-stop"
    TERMINATION = "termination"


class CompletionReason(str, Enum):
    NATURAL = "natural"
    MANUAL_STOP = "manual-stop"
    DISCARDED = "discarded"


_REASONS = {
    FinalizeTrigger.NATURAL: CompletionReason.NATURAL,
    FinalizeTrigger.MANUAL_STOP: CompletionReason.MANUAL_STOP,
    FinalizeTrigger.TERMINATION: CompletionReason.DISCARDED,
}


@dataclass(frozen=True)
class SessionDraft:
    subject: str
    worked_minutes: int
    technique: Technique
    started_at: datetime
    completion_reason: CompletionReason
    completed_cycles: int
    target_cycles: int

    @property
    def needs_review(self) -> bool:
        """Only reviewed drafts may become durable; discarded ones never do."""
        return self.completion_reason != CompletionReason.DISCARDED


class SessionFinalizer:
    def finalize(self, timer: StudyTimer, config: SessionConfig, trigger: FinalizeTrigger) -> SessionDraft | None:
        """Builds the draft for a finished run, or `None` when nothing was studied.

        The timer's accumulated seconds are consumed here, so a second call for
        the same run always yields `None`.
        """
        snapshot = timer.snapshot()
        seconds = timer.accumulator.clear()
        if seconds == 0:
            log.info(f"Finalized ({trigger.value}) with no study time, nothing to record")
            return None

        draft = SessionDraft(
            subject=config.subject,
            worked_minutes=worked_minutes(seconds),
            technique=config.technique,
            started_at=timer.started_at or datetime.now().astimezone(),
            completion_reason=_REASONS[trigger],
            completed_cycles=snapshot.completed_cycles,
            target_cycles=config.target_cycles,
        )
        if draft.needs_review:
            log.info(f"Finalized ({trigger.value}): {seconds}s -> {draft.worked_minutes} min draft for review")
        else:
            log.warning(f"Session terminated abnormally, discarding {seconds}s of unreviewed study time")
        return draft
