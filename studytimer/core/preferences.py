from __future__ import annotations

from typing import Any

from PyQt6.QtCore import QObject, pyqtSignal

from studytimer.core.config import SessionConfig, Technique, default_config, validate_config
from studytimer.core.errors import ConfigError
from studytimer.core.logger import log
from studytimer.data.storage import Storage


_SETTINGS_DEFAULTS: dict[str, Any] = {
    "confirm_stop": True,
    "technique": Technique.POMODORO.value,
    "subject": "general",
}


class Preferences(QObject):
    """User settings and the last session configuration, backed by `Storage`."""

    settings_changed = pyqtSignal(str, object)
    config_changed = pyqtSignal(object)

    def __init__(self) -> None:
        super().__init__()
        self.settings: dict[str, Any] = dict(_SETTINGS_DEFAULTS)
        self.session_config: SessionConfig = default_config()
        self._storage: Storage | None = None

    @property
    def confirm_stop(self) -> bool:
        return bool(self.settings.get("confirm_stop", True))

    def load_from_storage(self, storage: Storage) -> None:
        self._storage = storage
        raw_settings = storage.get_setting("settings", {})
        if isinstance(raw_settings, dict):
            defaulted = sorted(key for key in _SETTINGS_DEFAULTS if key not in raw_settings)
            self.settings = {**_SETTINGS_DEFAULTS, **raw_settings}
            if defaulted:
                log.debug(f"Settings defaulted: {', '.join(defaulted)}")
        else:
            log.warning(f"Stored settings were not a mapping ({type(raw_settings).__name__}), using defaults")
            self.settings = dict(_SETTINGS_DEFAULTS)

        self.session_config = self._load_config(storage.get_setting("session_config"))
        self.config_changed.emit(self.session_config)

    def save_setting(self, key: str, value: Any) -> None:
        self.settings[key] = value
        if self._storage:
            self._storage.set_setting("settings", self.settings)
        self.settings_changed.emit(key, value)

    def save_config(self, raw: SessionConfig | dict[str, Any]) -> SessionConfig:
        """Validates and remembers a session configuration; raises `ConfigError`."""
        config = validate_config(raw)
        self.session_config = config
        self.settings["technique"] = config.technique.value
        self.settings["subject"] = config.subject
        if self._storage:
            self._storage.set_setting("session_config", config.to_dict())
            self._storage.set_setting("settings", self.settings)
        self.config_changed.emit(config)
        return config

    def _load_config(self, raw: Any) -> SessionConfig:
        fallback_technique = self.settings.get("technique", Technique.POMODORO.value)
        fallback_subject = self.settings.get("subject") or _SETTINGS_DEFAULTS["subject"]
        if raw is None:
            return self._fallback(fallback_technique, fallback_subject)
        if not isinstance(raw, dict):
            log.warning("Stored session config is not a mapping, falling back to defaults")
            return self._fallback(fallback_technique, fallback_subject)
        try:
            return validate_config(raw)
        except ConfigError as exc:
            log.warning(f"Stored session config is invalid ({exc}), falling back to defaults")
            return self._fallback(fallback_technique, fallback_subject)

    def _fallback(self, technique: str, subject: str) -> SessionConfig:
        try:
            return default_config(technique, subject)
        except ConfigError:
            return default_config(Technique.POMODORO, _SETTINGS_DEFAULTS["subject"])
