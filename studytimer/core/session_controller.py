from __future__ import annotations

from typing import Any, Callable

from PyQt6.QtCore import QObject, pyqtSignal

from studytimer.core.config import SessionConfig, validate_config
from studytimer.core.errors import PersistenceError, TransitionError
from studytimer.core.feedback import FeedbackGate, SessionFeedback
from studytimer.core.finalizer import FinalizeTrigger, SessionDraft, SessionFinalizer
from studytimer.core.logger import log
from studytimer.core.scheduler import TickScheduler
from studytimer.core.timer import Phase, StudyTimer, TimerSnapshot


class SessionController(QObject):
    """Runs one study session at a time.

    Owns the timer, its tick scheduler and the finalizer, and hands finished
    runs to the feedback gate. Control commands that do not fit the current
    phase are logged and ignored; they return `False`.
    """

    snapshot_changed = pyqtSignal(object)
    phase_changed = pyqtSignal(object)
    cycle_completed = pyqtSignal(int)
    stop_confirmation_requested = pyqtSignal(object)
    reset_confirmation_requested = pyqtSignal(object)
    draft_ready = pyqtSignal(object)
    session_discarded = pyqtSignal(object)
    session_saved = pyqtSignal(int)
    persistence_failed = pyqtSignal(str)

    def __init__(
        self,
        config: SessionConfig,
        gate: FeedbackGate,
        scheduler: TickScheduler | None = None,
        finalizer: SessionFinalizer | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.timer = StudyTimer(validate_config(config))
        self.gate = gate
        self.scheduler = scheduler or TickScheduler(parent=self)
        self.finalizer = finalizer or SessionFinalizer()
        self._stop_pending = False
        self._reset_pending = False
        self._deferred_config: SessionConfig | None = None
        self._disposed = False
        self.scheduler.ticked.connect(self.handle_tick)

    def __enter__(self) -> "SessionController":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.dispose()

    @property
    def phase(self) -> Phase:
        return self.timer.phase

    @property
    def config(self) -> SessionConfig:
        return self.timer.config

    @property
    def deferred_config(self) -> SessionConfig | None:
        return self._deferred_config

    @property
    def stop_pending(self) -> bool:
        return self._stop_pending

    @property
    def reset_pending(self) -> bool:
        return self._reset_pending

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def snapshot(self) -> TimerSnapshot:
        return self.timer.snapshot()

    # ----- Control commands -----
    def configure(self, config: SessionConfig | dict[str, Any]) -> bool:
        """Applies a new configuration between runs; raises `ConfigError` if invalid.

        A configuration arriving mid-run is kept and applied once the timer is
        back to idle. Returns whether it was applied right away.
        """
        validated = validate_config(config)
        if self._disposed:
            return False
        if self.timer.is_active:
            self._deferred_config = validated
            log.info(f"Run in progress, config for '{validated.subject}' applies once it is cleared")
            return False
        self._deferred_config = None
        return self._command("configure", lambda: self.timer.configure(validated))

    def start(self) -> bool:
        if self.gate.pending is not None:
            log.info(f"Ignored start: draft for '{self.gate.pending.subject}' still awaits review")
            return False
        if self.timer.phase == Phase.COMPLETED:
            # a finished run must be cleared before the next one
            self._command("reset", self.timer.reset)
        return self._command("start", self.timer.start)

    def pause(self) -> bool:
        return self._command("pause", self.timer.pause)

    def resume(self) -> bool:
        return self._command("resume", self.timer.resume)

    def stop(self, requires_confirmation: bool = True) -> bool:
        """Ends the run early.

        With confirmation required (the default) this only asks: the run keeps
        going until `confirm_stop()` is called.
        """
        if self._disposed:
            return False
        if not self.timer.is_active:
            log.info(f"Ignored stop while {self.timer.phase.value}")
            return False
        if requires_confirmation:
            self._stop_pending = True
            self.stop_confirmation_requested.emit(self.timer.snapshot())
            return False
        return self._stop_now(FinalizeTrigger.MANUAL_STOP)

    def confirm_stop(self) -> bool:
        if not self._stop_pending:
            log.info("Stop confirmed without a pending request, ignoring")
            return False
        self._stop_pending = False
        return self._stop_now(FinalizeTrigger.MANUAL_STOP)

    def cancel_stop(self) -> None:
        self._stop_pending = False

    def reset(self, requires_confirmation: bool = True) -> bool:
        """Returns to idle. Dropping unsaved study time from a pause needs confirmation."""
        self._stop_pending = False
        if self._disposed:
            return False
        unsaved = self.timer.phase == Phase.PAUSED and self.timer.accumulator.seconds > 0
        if unsaved and requires_confirmation:
            self._reset_pending = True
            self.reset_confirmation_requested.emit(self.timer.snapshot())
            return False
        return self._command("reset", self.timer.reset)

    def confirm_reset(self) -> bool:
        if not self._reset_pending:
            log.info("Reset confirmed without a pending request, ignoring")
            return False
        self._reset_pending = False
        return self._command("reset", self.timer.reset)

    def cancel_reset(self) -> None:
        self._reset_pending = False

    # ----- Ticks -----
    def handle_tick(self) -> None:
        if self._disposed or not self.timer.is_ticking:
            log.debug(f"Dropped tick while {self.timer.phase.value}")
            return

        before = self.timer.snapshot()
        snapshot = self.timer.tick()
        self.snapshot_changed.emit(snapshot)
        if snapshot.completed_cycles > before.completed_cycles:
            self.cycle_completed.emit(snapshot.completed_cycles)
        if snapshot.phase == before.phase:
            return

        self._sync_scheduler()
        self.phase_changed.emit(snapshot.phase)
        if snapshot.phase == Phase.COMPLETED:
            self._stop_pending = False
            self._finalize(FinalizeTrigger.NATURAL)

    # ----- Feedback gate -----
    def confirm_feedback(self, feedback: SessionFeedback) -> int | None:
        try:
            session_id = self.gate.confirm(feedback)
        except PersistenceError as exc:
            self.persistence_failed.emit(str(exc))
            raise
        if session_id is not None:
            self.session_saved.emit(session_id)
            self._clear_completed()
        return session_id

    def discard_feedback(self) -> None:
        self.gate.discard()
        self._clear_completed()

    # ----- Teardown -----
    def terminate(self) -> None:
        """Host is going away mid-session: close the run without saving it."""
        try:
            if not self._disposed and self.timer.is_active:
                self._stop_now(FinalizeTrigger.TERMINATION)
        finally:
            self.dispose()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._stop_pending = False
        self._reset_pending = False
        self.scheduler.dispose()
        try:
            self.scheduler.ticked.disconnect(self.handle_tick)
        except TypeError:
            pass
        log.debug("Session controller disposed")

    # ----- Internals -----
    def _command(self, name: str, action: Callable[[], Any]) -> bool:
        if self._disposed:
            log.debug(f"Ignored {name} on a disposed session")
            return False
        before = self.timer.phase
        try:
            action()
        except TransitionError as exc:
            log.info(f"Ignored command: {exc}")
            return False
        self._sync_scheduler()
        snapshot = self.timer.snapshot()
        if snapshot.phase != before:
            self._reset_pending = False
            if snapshot.phase == Phase.IDLE:
                self._apply_deferred_config()
                snapshot = self.timer.snapshot()
            self.phase_changed.emit(snapshot.phase)
        self.snapshot_changed.emit(snapshot)
        return True

    def _apply_deferred_config(self) -> None:
        if self._deferred_config is None:
            return
        config, self._deferred_config = self._deferred_config, None
        self.timer.configure(config)
        log.info(f"Applied deferred config for '{config.subject}'")

    def _stop_now(self, trigger: FinalizeTrigger) -> bool:
        if not self._command("stop", self.timer.stop):
            return False
        self._finalize(trigger)
        return True

    def _finalize(self, trigger: FinalizeTrigger) -> SessionDraft | None:
        draft = self.finalizer.finalize(self.timer, self.timer.config, trigger)
        if draft is None:
            return None
        if draft.needs_review:
            self.gate.submit(draft)
            self.draft_ready.emit(draft)
        else:
            self.session_discarded.emit(draft)
        return draft

    def _clear_completed(self) -> None:
        if self.timer.phase == Phase.COMPLETED:
            self._command("reset", self.timer.reset)

    def _sync_scheduler(self) -> None:
        if self.timer.is_ticking and not self._disposed:
            self.scheduler.attach()
        else:
            self.scheduler.detach()
