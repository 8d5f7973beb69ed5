from __future__ import annotations

"""Application entry point.

Builds the Qt application, opens the session store, loads preferences and
shows the main window.
"""

import logging
import os
import sys
from pathlib import Path

from PyQt6.QtWidgets import QApplication

from studytimer.core.feedback import FeedbackGate
from studytimer.core.logger import get_logger, log
from studytimer.core.preferences import Preferences
from studytimer.core.session_controller import SessionController
from studytimer.data.storage import Storage
from studytimer.ui.main_window import MainWindow


def data_dir() -> Path:
    """Directory holding the database and logs; `STUDYTIMER_HOME` overrides the cwd."""
    return Path(os.environ.get("STUDYTIMER_HOME") or Path.cwd())


def default_db_path() -> Path:
    return data_dir() / "studytimer.db"


def build_session(storage: Storage, preferences: Preferences) -> SessionController:
    """Controller for the saved config, following later config changes."""
    controller = SessionController(preferences.session_config, FeedbackGate(storage))
    preferences.config_changed.connect(controller.configure)
    return controller


def main() -> int:
    get_logger(level=logging.DEBUG, log_dir=data_dir() / "logs")
    log.info("=== Study timer starting ===")
    try:
        app = QApplication(sys.argv)

        storage = Storage(default_db_path())
        storage.init_db()

        preferences = Preferences()
        preferences.load_from_storage(storage)

        controller = build_session(storage, preferences)

        window = MainWindow(storage=storage, preferences=preferences, controller=controller)
        window.show()
        app.aboutToQuit.connect(controller.terminate)
        return app.exec()
    except Exception:
        log.exception("Uncaught exception in entrypoint, exiting")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
