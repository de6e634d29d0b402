"""Shared test harness wiring.

Several test modules need a Qt application object. Qt allows only one per
process, and widgets require a QApplication (not a bare QCoreApplication), so
create a single offscreen QApplication up front that every module reuses.
"""
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

try:
    from PyQt6.QtWidgets import QApplication
except ImportError:  # Qt-dependent tests skip themselves when PyQt6 is absent
    QApplication = None

if QApplication is not None:
    _QT_APP = QApplication.instance() or QApplication([])
