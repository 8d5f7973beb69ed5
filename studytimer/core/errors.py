from __future__ import annotations


class StudyTimerError(Exception):
    """Base class for every error raised by the study timer."""


class ConfigError(StudyTimerError, ValueError):
    """Session configuration rejected before a run starts."""


class TransitionError(StudyTimerError, RuntimeError):
    """Control command that is not valid in the current phase."""

    def __init__(self, command: str, phase: str) -> None:
        super().__init__(f"Cannot {command} while {phase}")
        self.command = command
        self.phase = phase


class PersistenceError(StudyTimerError):
    """Session store refused a finished session record."""

    retryable = True
