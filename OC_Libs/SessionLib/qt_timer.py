"""
PyQt5-backed single-shot timer for the preview scheduler.

Requires PyQt5 and a running Qt event loop (QApplication or QCoreApplication).
"""

from typing import Optional

from PyQt5.QtCore import QObject, QTimer

from OC_Libs.SessionLib.preview_timers import PreviewTimer, TimerCallback


class QtSingleShotTimer(PreviewTimer):
    """Wraps a single-shot QTimer; restarting it resets the countdown."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._timer = QTimer(parent)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)
        self._callback: Optional[TimerCallback] = None

    def start(self, delay_ms: int, callback: TimerCallback) -> None:
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        self._callback = callback
        self._timer.start(int(delay_ms))

    def cancel(self) -> None:
        self._timer.stop()
        self._callback = None

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def _on_timeout(self) -> None:
        callback = self._callback
        self._callback = None
        if callback is not None:
            callback()
