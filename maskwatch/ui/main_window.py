"""
Monitor window: live camera preview, current mask status, camera/session state,
switch and start/stop buttons. Status updates arrive through MonitorSignals on
the GUI thread; the preview is polled from the latest-frame slot on a timer.
"""

from __future__ import annotations

import logging

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QCloseEvent, QFont
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from maskwatch.config import PREVIEW_INTERVAL_MS, PREVIEW_MAX_SIZE
from maskwatch.core.version import get_version_string
from maskwatch.pipeline.domain import WAITING_TEXT, SessionState
from maskwatch.ui.preview import frame_to_pixmap
from maskwatch.ui.view_model import MonitorViewModel

log = logging.getLogger(__name__)

ACCESS_DENIED_NOTICE = (
    "Нет доступа к камере. Разрешите доступ (MW_CAMERA_ACCESS=1) и перезапустите мониторинг."
)
PREVIEW_PLACEHOLDER = "Нет изображения"

_STATE_LABELS = {
    SessionState.IDLE.value: "Камера не запущена",
    SessionState.CONFIGURING.value: "Подключение камеры…",
    SessionState.RUNNING.value: "Камера: {position}",
    SessionState.SWITCHING_DEVICE.value: "Переключение камеры…",
    SessionState.STOPPED.value: "Остановлено",
}


class MonitorWindow(QWidget):
    def __init__(self, view_model: MonitorViewModel) -> None:
        super().__init__()
        self._vm = view_model
        self._state = SessionState.IDLE.value
        self.setWindowTitle(f"MaskWatch {get_version_string()}")
        self.setMinimumWidth(420)

        self._preview_label = QLabel(PREVIEW_PLACEHOLDER)
        self._preview_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._preview_label.setMinimumSize(*PREVIEW_MAX_SIZE)
        self._preview_label.setStyleSheet("background: #111; color: #888;")

        self._status_label = QLabel(WAITING_TEXT)
        self._status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        font = QFont(self._status_label.font())
        font.setPointSize(font.pointSize() + 8)
        font.setBold(True)
        self._status_label.setFont(font)

        self._session_label = QLabel(_STATE_LABELS[self._state])
        self._session_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._notice_label = QLabel("")
        self._notice_label.setWordWrap(True)
        self._notice_label.setStyleSheet("color: #c62828;")
        self._notice_label.hide()

        self._start_stop_btn = QPushButton("Старт")
        self._switch_btn = QPushButton("Сменить камеру")
        self._start_stop_btn.clicked.connect(self._on_start_stop)
        self._switch_btn.clicked.connect(self._on_switch)

        buttons = QHBoxLayout()
        buttons.addWidget(self._switch_btn)
        buttons.addWidget(self._start_stop_btn)

        layout = QVBoxLayout(self)
        layout.addWidget(self._preview_label)
        layout.addWidget(self._status_label)
        layout.addWidget(self._session_label)
        layout.addWidget(self._notice_label)
        layout.addLayout(buttons)

        signals = self._vm.signals
        signals.status_changed.connect(self._status_label.setText)
        signals.access_denied.connect(self._on_access_denied)
        signals.session_state_changed.connect(self._on_session_state)
        signals.device_error.connect(self._show_notice)
        signals.start_failed.connect(self._on_start_failed)
        signals.unhandled_error.connect(self._show_notice)
        self._sync_buttons()

        self._preview_timer = QTimer(self)
        self._preview_timer.setInterval(max(1, PREVIEW_INTERVAL_MS))
        self._preview_timer.timeout.connect(self._refresh_preview)
        self._preview_timer.start()

    def start(self) -> None:
        self._notice_label.hide()
        self._vm.start()

    def _on_start_stop(self) -> None:
        if self._state in (SessionState.IDLE.value, SessionState.STOPPED.value):
            self.start()
        else:
            self._vm.stop()

    def _on_switch(self) -> None:
        self._vm.switch_camera()

    def _on_session_state(self, state: str, position: str) -> None:
        self._state = state
        self._session_label.setText(_STATE_LABELS.get(state, state).format(position=position))
        self._sync_buttons()
        if state in (SessionState.IDLE.value, SessionState.STOPPED.value):
            self._preview_label.clear()
            self._preview_label.setText(PREVIEW_PLACEHOLDER)

    def _refresh_preview(self) -> None:
        frame = self._vm.take_preview_frame()
        if frame is None:
            return
        try:
            pixmap = frame_to_pixmap(frame.buffer)
        except ValueError as e:
            log.debug("Preview frame skipped: %s", e)
            return
        self._preview_label.setPixmap(pixmap)

    def _sync_buttons(self) -> None:
        running = self._state == SessionState.RUNNING.value
        # Coalesced switches are allowed while one is pending.
        self._switch_btn.setEnabled(running or self._state == SessionState.SWITCHING_DEVICE.value)
        idle = self._state in (SessionState.IDLE.value, SessionState.STOPPED.value)
        self._start_stop_btn.setText("Старт" if idle else "Стоп")
        self._start_stop_btn.setEnabled(self._state != SessionState.CONFIGURING.value)

    def _on_access_denied(self) -> None:
        self._show_notice(ACCESS_DENIED_NOTICE)

    def _on_start_failed(self, message: str) -> None:
        self._show_notice(message)
        QMessageBox.warning(self, "Мониторинг", message)

    def _show_notice(self, message: str) -> None:
        self._notice_label.setText(message)
        self._notice_label.show()

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        self._preview_timer.stop()
        try:
            self._vm.stop()
            self._vm.close()
        except Exception:
            log.exception("Failed to stop monitoring on close")
        super().closeEvent(event)
