from __future__ import annotations

"""Session configuration and its validation."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Mapping

from studytimer.core.errors import ConfigError


MIN_STUDY_SECONDS = 1
MAX_STUDY_SECONDS = 180 * 60
MAX_BREAK_SECONDS = 30 * 60
MIN_LONG_BREAK_INTERVAL = 2


class Technique(str, Enum):
    POMODORO = "Pomodoro"
    STOPWATCH = "Stopwatch"
    TIMEBLOCK = "Timeblock"
    FREEFORM = "Freeform"

    @property
    def allows_break(self) -> bool:
        return self is Technique.POMODORO


@dataclass(frozen=True)
class TechniqueDefaults:
    study_minutes: int
    break_minutes: int
    cycles: int
    long_break_every: int | None = None
    long_break_minutes: int | None = None


TECHNIQUE_DEFAULTS: dict[Technique, TechniqueDefaults] = {
    Technique.POMODORO: TechniqueDefaults(25, 5, 4, long_break_every=4, long_break_minutes=15),
    Technique.TIMEBLOCK: TechniqueDefaults(45, 0, 3),
    Technique.STOPWATCH: TechniqueDefaults(60, 0, 2),
    Technique.FREEFORM: TechniqueDefaults(30, 0, 1),
}


@dataclass(frozen=True)
class SessionConfig:
    technique: Technique
    subject: str
    study_duration_seconds: int
    break_duration_seconds: int = 0
    target_cycles: int = 1
    long_break_every_n_cycles: int | None = None
    long_break_duration_seconds: int | None = None

    @property
    def has_long_breaks(self) -> bool:
        return self.long_break_every_n_cycles is not None and self.long_break_duration_seconds is not None

    def break_seconds_after(self, completed_cycles: int) -> int:
        """Length of the break that follows the given number of finished cycles."""
        if self.has_long_breaks and completed_cycles % self.long_break_every_n_cycles == 0:
            return int(self.long_break_duration_seconds)
        return self.break_duration_seconds

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["technique"] = self.technique.value
        return payload

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SessionConfig":
        return validate_config(raw)


def _require_int(raw: Mapping[str, Any], key: str, low: int, high: int | None = None) -> int:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    if value < low or (high is not None and value > high):
        bound = f"[{low}, {high}]" if high is not None else f">= {low}"
        raise ConfigError(f"{key} must be {bound}, got {value}")
    return value


def _optional_int(raw: Mapping[str, Any], key: str, low: int, high: int | None = None) -> int | None:
    if raw.get(key) is None:
        return None
    return _require_int(raw, key, low, high)


def _parse_technique(value: Any) -> Technique:
    if isinstance(value, Technique):
        return value
    try:
        return Technique(value)
    except ValueError:
        raise ConfigError(f"Unknown technique {value!r}") from None


def validate_config(raw: SessionConfig | Mapping[str, Any]) -> SessionConfig:
    """Validates and normalizes a session configuration.

    Durations and cycle counts outside their ranges raise `ConfigError`. Break
    settings on a technique without breaks are cleared instead of rejected so
    that stale form defaults do not block a run.
    """
    if isinstance(raw, SessionConfig):
        raw = asdict(raw)
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Session config must be a mapping, got {type(raw).__name__}")

    technique = _parse_technique(raw.get("technique"))

    subject = raw.get("subject")
    if not isinstance(subject, str) or not subject.strip():
        raise ConfigError("subject must be a non-empty string")

    study = _require_int(raw, "study_duration_seconds", MIN_STUDY_SECONDS, MAX_STUDY_SECONDS)
    cycles = _require_int(raw, "target_cycles", 1)

    if technique.allows_break:
        break_seconds = _optional_int(raw, "break_duration_seconds", 0, MAX_BREAK_SECONDS) or 0
        long_every = _optional_int(raw, "long_break_every_n_cycles", MIN_LONG_BREAK_INTERVAL)
        long_seconds = _optional_int(raw, "long_break_duration_seconds", 0, MAX_BREAK_SECONDS)
    else:
        break_seconds = 0
        long_every = None
        long_seconds = None

    return SessionConfig(
        technique=technique,
        subject=subject.strip(),
        study_duration_seconds=study,
        break_duration_seconds=break_seconds,
        target_cycles=cycles,
        long_break_every_n_cycles=long_every,
        long_break_duration_seconds=long_seconds,
    )


def default_config(technique: Technique | str = Technique.POMODORO, subject: str = "general") -> SessionConfig:
    technique = _parse_technique(technique)
    defaults = TECHNIQUE_DEFAULTS[technique]
    long_seconds = defaults.long_break_minutes * 60 if defaults.long_break_minutes is not None else None
    return validate_config(
        {
            "technique": technique,
            "subject": subject,
            "study_duration_seconds": defaults.study_minutes * 60,
            "break_duration_seconds": defaults.break_minutes * 60,
            "target_cycles": defaults.cycles,
            "long_break_every_n_cycles": defaults.long_break_every,
            "long_break_duration_seconds": long_seconds,
        }
    )
