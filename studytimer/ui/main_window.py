from __future__ import annotations

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QProgressBar,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from studytimer.core.errors import PersistenceError
from studytimer.core.feedback import MAX_DISTRACTIONS, Mood, SessionFeedback
from studytimer.core.finalizer import SessionDraft
from studytimer.core.preferences import Preferences
from studytimer.core.session_controller import SessionController
from studytimer.core.timer import Phase, TimerSnapshot
from studytimer.data.storage import Storage


PHASE_TITLES = {
    Phase.IDLE: "Ready",
    Phase.RUNNING: "Studying",
    Phase.PAUSED: "Paused",
    Phase.BREAK: "Break",
    Phase.COMPLETED: "Done",
}


def format_remaining(seconds: int) -> str:
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class FeedbackDialog(QDialog):
    def __init__(self, draft: SessionDraft, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("How did it go?")

        layout = QVBoxLayout(self)
        layout.addWidget(
            QLabel(f"{draft.subject} · {draft.technique.value} · {draft.worked_minutes} min "
                   f"· {draft.completed_cycles}/{draft.target_cycles} cycles")
        )

        form = QFormLayout()
        self.quality = QSpinBox()
        self.quality.setRange(1, 5)
        self.quality.setValue(3)
        self.mood = QComboBox()
        for mood in Mood:
            self.mood.addItem(mood.value.capitalize(), mood)
        self.mood.setCurrentIndex(list(Mood).index(Mood.NORMAL))
        self.distractions = QSpinBox()
        self.distractions.setRange(0, MAX_DISTRACTIONS)
        self.notes = QPlainTextEdit()
        form.addRow("Quality:", self.quality)
        form.addRow("Mood:", self.mood)
        form.addRow("Distractions:", self.distractions)
        form.addRow("Notes:", self.notes)
        layout.addLayout(form)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Discard)
        buttons.accepted.connect(self.accept)
        buttons.button(QDialogButtonBox.StandardButton.Discard).clicked.connect(self.reject)
        layout.addWidget(buttons)

    def feedback(self) -> SessionFeedback:
        return SessionFeedback(
            quality=self.quality.value(),
            mood=self.mood.currentData(),
            distractions=self.distractions.value(),
            notes=self.notes.toPlainText(),
        )


class MainWindow(QMainWindow):
    def __init__(self, storage: Storage, preferences: Preferences, controller: SessionController) -> None:
        super().__init__()
        self.setWindowTitle("Study Timer")
        self.resize(520, 560)

        self.storage = storage
        self.preferences = preferences
        self.controller = controller

        self._build_ui()
        self._connect_signals()
        self._render(self.controller.snapshot())
        self.refresh_history()

    def _build_ui(self) -> None:
        central = QWidget(self)
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        self.title_label = QLabel()
        self.title_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.time_label = QLabel("00:00")
        self.time_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        font = self.time_label.font()
        font.setPointSize(40)
        self.time_label.setFont(font)
        self.progress = QProgressBar()
        self.progress.setRange(0, 1000)
        self.progress.setTextVisible(False)
        self.cycle_label = QLabel()
        self.cycle_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        layout.addWidget(self.title_label)
        layout.addWidget(self.time_label)
        layout.addWidget(self.progress)
        layout.addWidget(self.cycle_label)

        controls = QHBoxLayout()
        self.start_btn = QPushButton("Start")
        self.pause_btn = QPushButton("Pause")
        self.resume_btn = QPushButton("Resume")
        self.stop_btn = QPushButton("Stop")
        self.reset_btn = QPushButton("Reset")
        for button in (self.start_btn, self.pause_btn, self.resume_btn, self.stop_btn, self.reset_btn):
            controls.addWidget(button)
        layout.addLayout(controls)

        layout.addWidget(QLabel("Recent sessions"))
        self.history_list = QListWidget()
        layout.addWidget(self.history_list, 1)

        space_action = QAction(self)
        space_action.setShortcut(QKeySequence(Qt.Key.Key_Space))
        space_action.triggered.connect(self._space_toggle)
        self.addAction(space_action)

    def _connect_signals(self) -> None:
        self.start_btn.clicked.connect(self.controller.start)
        self.pause_btn.clicked.connect(self.controller.pause)
        self.resume_btn.clicked.connect(self.controller.resume)
        self.stop_btn.clicked.connect(lambda: self.controller.stop(requires_confirmation=self.preferences.confirm_stop))
        self.reset_btn.clicked.connect(lambda: self.controller.reset(requires_confirmation=self.preferences.confirm_stop))
        self.controller.snapshot_changed.connect(self._render)
        self.controller.stop_confirmation_requested.connect(self._confirm_stop)
        self.controller.reset_confirmation_requested.connect(self._confirm_reset)
        self.controller.draft_ready.connect(self._ask_feedback)
        self.controller.session_saved.connect(lambda _session_id: self.refresh_history())
        self.preferences.config_changed.connect(lambda _config: self._render(self.controller.snapshot()))

    def _space_toggle(self) -> None:
        phase = self.controller.phase
        if phase in {Phase.IDLE, Phase.COMPLETED}:
            self.controller.start()
        elif phase in {Phase.RUNNING, Phase.BREAK}:
            self.controller.pause()
        elif phase == Phase.PAUSED:
            self.controller.resume()

    def _render(self, snapshot: TimerSnapshot) -> None:
        config = self.controller.config
        self.title_label.setText(f"{PHASE_TITLES[snapshot.phase]} · {config.technique.value} · {config.subject}")
        remaining = snapshot.remaining_seconds if snapshot.phase != Phase.IDLE else config.study_duration_seconds
        self.time_label.setText(format_remaining(remaining))
        self.progress.setValue(int(snapshot.progress * 1000))
        self.cycle_label.setText(
            f"Cycle {snapshot.current_cycle}/{snapshot.target_cycles} · completed {snapshot.completed_cycles}"
        )
        phase = snapshot.phase
        self.start_btn.setEnabled(phase in {Phase.IDLE, Phase.COMPLETED})
        self.pause_btn.setEnabled(phase in {Phase.RUNNING, Phase.BREAK})
        self.resume_btn.setEnabled(phase == Phase.PAUSED)
        self.stop_btn.setEnabled(phase in {Phase.RUNNING, Phase.BREAK, Phase.PAUSED})
        self.reset_btn.setEnabled(phase in {Phase.PAUSED, Phase.COMPLETED})

    def _confirm_stop(self, _snapshot: TimerSnapshot) -> None:
        answer = QMessageBox.question(
            self,
            "End session",
            "End this session now? The remaining time is dropped and you will be asked for feedback.",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if answer == QMessageBox.StandardButton.Yes:
            self.controller.confirm_stop()
        else:
            self.controller.cancel_stop()

    def _confirm_reset(self, snapshot: TimerSnapshot) -> None:
        answer = QMessageBox.question(
            self,
            "Reset session",
            f"Reset now? {snapshot.accumulated_study_seconds} s of study time will not be saved.",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if answer == QMessageBox.StandardButton.Yes:
            self.controller.confirm_reset()
        else:
            self.controller.cancel_reset()

    def _ask_feedback(self, draft: SessionDraft) -> None:
        dialog = FeedbackDialog(draft, self)
        if dialog.exec() != QDialog.DialogCode.Accepted:
            self.controller.discard_feedback()
            return
        feedback = dialog.feedback()
        while True:
            try:
                self.controller.confirm_feedback(feedback)
                return
            except PersistenceError as exc:
                answer = QMessageBox.warning(
                    self,
                    "Session not saved",
                    f"{exc}\n\nTry again?",
                    QMessageBox.StandardButton.Retry | QMessageBox.StandardButton.Discard,
                )
                if answer != QMessageBox.StandardButton.Retry:
                    self.controller.discard_feedback()
                    return

    def refresh_history(self) -> None:
        self.history_list.clear()
        for row in self.storage.list_sessions(limit=50):
            item_text = (
                f"{row.started_at[:16].replace('T', ' ')} · {row.subject} · {row.duration_min}m · "
                f"{row.technique} · {row.completion_reason} · quality {row.quality}"
            )
            QListWidgetItem(item_text, self.history_list)

    def closeEvent(self, event) -> None:  # noqa: N802
        if self.controller.timer.is_active:
            answer = QMessageBox.question(
                self,
                "Exit",
                "A study session is active. Exit anyway? The session will not be saved.",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            )
            if answer != QMessageBox.StandardButton.Yes:
                event.ignore()
                return
        self.controller.terminate()
        event.accept()
