"""
QApplication setup: High DPI, organization and app name.
"""

from __future__ import annotations

import sys
from typing import NoReturn

from PySide6.QtCore import Qt
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QApplication

from maskwatch import __version__


def create_application() -> QApplication:
    """Create and configure QApplication. Call before any Qt widgets."""
    QGuiApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("MaskWatch")
    app.setOrganizationName("MaskWatch")
    app.setApplicationVersion(__version__)
    return app


def run_application(app: QApplication) -> NoReturn:
    """Run the event loop. Does not return until app quits."""
    sys.exit(app.exec())
