from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from studytimer.core.logger import log


TICK_INTERVAL_MS = 1000


class TickScheduler(QObject):
    """1 Hz wake source backed by a `QTimer`.

    `ticked` is only emitted while attached. Once disposed the scheduler never
    attaches again, and a timeout already queued by the event loop is dropped.
    """

    ticked = pyqtSignal()

    def __init__(self, interval_ms: int = TICK_INTERVAL_MS, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._attached = False
        self._disposed = False
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)

    @property
    def is_attached(self) -> bool:
        return self._attached

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def attach(self) -> None:
        if self._disposed or self._attached:
            return
        self._attached = True
        self._timer.start()
        log.debug("Tick scheduler attached")

    def detach(self) -> None:
        if not self._attached:
            return
        self._attached = False
        self._timer.stop()
        log.debug("Tick scheduler detached")

    def dispose(self) -> None:
        self.detach()
        self._disposed = True

    @contextmanager
    def subscription(self) -> Iterator["TickScheduler"]:
        self.attach()
        try:
            yield self
        finally:
            self.detach()

    def _on_timeout(self) -> None:
        if not self._attached:
            return
        self.ticked.emit()
