from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from studytimer.core.accumulator import StudyAccumulator
from studytimer.core.config import SessionConfig
from studytimer.core.errors import TransitionError
from studytimer.core.logger import log


class Phase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    BREAK = "break"
    COMPLETED = "completed"


TICKING_PHASES = frozenset({Phase.RUNNING, Phase.BREAK})
ACTIVE_PHASES = frozenset({Phase.RUNNING, Phase.BREAK, Phase.PAUSED})
RESETTABLE_PHASES = frozenset({Phase.IDLE, Phase.PAUSED, Phase.COMPLETED})


@dataclass(frozen=True)
class TimerSnapshot:
    phase: Phase
    remaining_seconds: int
    total_phase_seconds: int
    current_cycle: int
    completed_cycles: int
    target_cycles: int
    accumulated_study_seconds: int

    @property
    def progress(self) -> float:
        if self.total_phase_seconds <= 0:
            return 0.0
        done = self.total_phase_seconds - self.remaining_seconds
        return max(0.0, min(1.0, done / self.total_phase_seconds))

    @property
    def is_break(self) -> bool:
        return self.phase == Phase.BREAK


@dataclass
class RunContext:
    phase: Phase = Phase.IDLE
    remaining_seconds: int = 0
    total_phase_seconds: int = 0
    current_cycle: int = 1
    completed_cycles: int = 0
    last_active_phase: Phase = Phase.RUNNING
    started_at: datetime | None = None


class StudyTimer:
    """Tick-driven study/break state machine detached from any UI framework.

    The host calls `tick()` once per second while the phase is running or on a
    break; every other call is a control command. Commands that do not apply to
    the current phase raise `TransitionError` and leave the state untouched.
    """

    def __init__(self, config: SessionConfig) -> None:
        self._config = config
        self._ctx = RunContext()
        self._accumulator = StudyAccumulator()

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def phase(self) -> Phase:
        return self._ctx.phase

    @property
    def is_ticking(self) -> bool:
        return self._ctx.phase in TICKING_PHASES

    @property
    def is_active(self) -> bool:
        return self._ctx.phase in ACTIVE_PHASES

    @property
    def started_at(self) -> datetime | None:
        return self._ctx.started_at

    @property
    def accumulator(self) -> StudyAccumulator:
        return self._accumulator

    def configure(self, config: SessionConfig) -> None:
        self._require("configure", {Phase.IDLE, Phase.COMPLETED})
        self._config = config

    def start(self, now: datetime | None = None) -> TimerSnapshot:
        self._require("start", {Phase.IDLE})
        self._accumulator.clear()
        self._ctx = RunContext(started_at=now or datetime.now().astimezone())
        self._begin_phase(Phase.RUNNING, self._config.study_duration_seconds)
        log.info(
            f"Started {self._config.technique.value} session on '{self._config.subject}' "
            f"({self._config.target_cycles} cycle(s) of {self._config.study_duration_seconds}s)"
        )
        return self.snapshot()

    def pause(self) -> TimerSnapshot:
        self._require("pause", TICKING_PHASES)
        self._ctx.last_active_phase = self._ctx.phase
        self._ctx.phase = Phase.PAUSED
        return self.snapshot()

    def resume(self) -> TimerSnapshot:
        self._require("resume", {Phase.PAUSED})
        self._ctx.phase = self._ctx.last_active_phase
        return self.snapshot()

    def stop(self) -> TimerSnapshot:
        self._require("stop", ACTIVE_PHASES)
        self._ctx.phase = Phase.COMPLETED
        log.info(f"Stopped session at cycle {self._ctx.current_cycle}/{self._config.target_cycles}")
        return self.snapshot()

    def reset(self) -> TimerSnapshot:
        self._require("reset", RESETTABLE_PHASES)
        dropped = self._accumulator.clear()
        if dropped:
            log.warning(f"Reset dropped {dropped}s of unsaved study time")
        self._ctx = RunContext()
        return self.snapshot()

    def tick(self) -> TimerSnapshot:
        if self._ctx.phase not in TICKING_PHASES:
            return self.snapshot()

        self._accumulator.observe(self._ctx.phase == Phase.RUNNING)
        self._ctx.remaining_seconds = max(0, self._ctx.remaining_seconds - 1)
        if self._ctx.remaining_seconds == 0:
            self._advance()
        return self.snapshot()

    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            phase=self._ctx.phase,
            remaining_seconds=self._ctx.remaining_seconds,
            total_phase_seconds=self._ctx.total_phase_seconds,
            current_cycle=self._ctx.current_cycle,
            completed_cycles=self._ctx.completed_cycles,
            target_cycles=self._config.target_cycles,
            accumulated_study_seconds=self._accumulator.seconds,
        )

    def _advance(self) -> None:
        ctx = self._ctx
        if ctx.phase == Phase.RUNNING:
            ctx.completed_cycles += 1
            if ctx.current_cycle >= self._config.target_cycles:
                ctx.phase = Phase.COMPLETED
                log.info(f"All {ctx.completed_cycles} cycle(s) completed")
                return
            break_seconds = self._config.break_seconds_after(ctx.completed_cycles)
            if break_seconds > 0:
                self._begin_phase(Phase.BREAK, break_seconds)
                log.info(f"Cycle {ctx.current_cycle} done, {break_seconds}s break")
                return
            # zero-length break
            ctx.current_cycle += 1
            self._begin_phase(Phase.RUNNING, self._config.study_duration_seconds)
        elif ctx.phase == Phase.BREAK:
            ctx.current_cycle += 1
            self._begin_phase(Phase.RUNNING, self._config.study_duration_seconds)
            log.info(f"Break over, cycle {ctx.current_cycle}/{self._config.target_cycles} started")

    def _begin_phase(self, phase: Phase, total_seconds: int) -> None:
        self._ctx.phase = phase
        self._ctx.last_active_phase = phase
        self._ctx.total_phase_seconds = total_seconds
        self._ctx.remaining_seconds = total_seconds

    def _require(self, command: str, allowed: set[Phase] | frozenset[Phase]) -> None:
        if self._ctx.phase not in allowed:
            raise TransitionError(command, self._ctx.phase.value)
