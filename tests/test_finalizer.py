from datetime import datetime, timezone

import pytest

from studytimer.core.accumulator import StudyAccumulator, worked_minutes
from studytimer.core.config import SessionConfig, Technique
from studytimer.core.finalizer import CompletionReason, FinalizeTrigger, SessionFinalizer
from studytimer.core.timer import StudyTimer


CONFIG = SessionConfig(
    technique=Technique.POMODORO,
    subject="biology",
    study_duration_seconds=3600,
    break_duration_seconds=300,
    target_cycles=2,
)
STARTED = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def timer_after(ticks: int) -> StudyTimer:
    timer = StudyTimer(CONFIG)
    timer.start(now=STARTED)
    for _ in range(ticks):
        timer.tick()
    timer.stop()
    return timer


@pytest.mark.parametrize(
    ("seconds", "minutes"),
    [(0, 0), (1, 1), (29, 1), (47, 1), (89, 1), (90, 2), (150, 3), (3000, 50)],
)
def test_worked_minutes_rounding(seconds: int, minutes: int) -> None:
    assert worked_minutes(seconds) == minutes


def test_accumulator_ignores_non_study_ticks() -> None:
    accumulator = StudyAccumulator()
    for studying in (True, False, True, False, False, True):
        accumulator.observe(studying)

    assert accumulator.seconds == 3
    assert accumulator.clear() == 3
    assert accumulator.seconds == 0


def test_manual_stop_after_47_seconds_drafts_one_minute() -> None:
    timer = timer_after(47)

    draft = SessionFinalizer().finalize(timer, CONFIG, FinalizeTrigger.MANUAL_STOP)

    assert draft is not None
    assert draft.worked_minutes == 1
    assert draft.completion_reason == CompletionReason.MANUAL_STOP
    assert draft.subject == "biology"
    assert draft.technique == Technique.POMODORO
    assert draft.started_at == STARTED
    assert draft.needs_review is True


def test_no_draft_without_study_time() -> None:
    timer = timer_after(0)

    assert SessionFinalizer().finalize(timer, CONFIG, FinalizeTrigger.MANUAL_STOP) is None


def test_termination_draft_is_marked_discarded() -> None:
    timer = timer_after(5)

    draft = SessionFinalizer().finalize(timer, CONFIG, FinalizeTrigger.TERMINATION)

    assert draft is not None
    assert draft.completion_reason == CompletionReason.DISCARDED
    assert draft.needs_review is False


def test_finalize_consumes_accumulated_time() -> None:
    timer = timer_after(120)
    finalizer = SessionFinalizer()

    first = finalizer.finalize(timer, CONFIG, FinalizeTrigger.MANUAL_STOP)
    second = finalizer.finalize(timer, CONFIG, FinalizeTrigger.MANUAL_STOP)

    assert first is not None and first.worked_minutes == 2
    assert second is None
    assert timer.accumulator.seconds == 0


def test_natural_completion_records_cycles() -> None:
    config = SessionConfig(
        technique=Technique.POMODORO,
        subject="biology",
        study_duration_seconds=60,
        break_duration_seconds=30,
        target_cycles=2,
    )
    timer = StudyTimer(config)
    timer.start(now=STARTED)
    for _ in range(60 + 30 + 60):
        timer.tick()

    draft = SessionFinalizer().finalize(timer, config, FinalizeTrigger.NATURAL)

    assert draft is not None
    assert draft.completion_reason == CompletionReason.NATURAL
    assert draft.worked_minutes == 2
    assert draft.completed_cycles == 2
    assert draft.target_cycles == 2
