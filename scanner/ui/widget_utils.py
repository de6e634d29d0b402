import numpy as np
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QImage
from PyQt6.QtWidgets import QLabel, QPushButton

from scanner.ui.theme import Styles


def make_info_label(text: str = "", color=None) -> QLabel:
    """Read-only status label."""
    label = QLabel(text)
    label.setFocusPolicy(Qt.FocusPolicy.NoFocus)
    label.setTextInteractionFlags(Qt.TextInteractionFlag.NoTextInteraction)
    label.setStyleSheet(Styles.info_label(color) if color else Styles.info_label())
    return label


def make_button(text: str) -> QPushButton:
    button = QPushButton(text)
    button.setFocusPolicy(Qt.FocusPolicy.NoFocus)
    button.setStyleSheet(Styles.button())
    return button


def make_preview_label(
    text: str = "",
    min_height: int = 240,
    object_name: str = "camera_preview",
) -> QLabel:
    """Create the dark, non-interactive camera preview surface."""
    label = QLabel(text)
    label.setObjectName(object_name)
    label.setAlignment(Qt.AlignmentFlag.AlignCenter)
    label.setMinimumHeight(min_height)
    label.setTextInteractionFlags(Qt.TextInteractionFlag.NoTextInteraction)
    label.setFocusPolicy(Qt.FocusPolicy.NoFocus)
    label.setStyleSheet(Styles.preview_label(object_name))
    return label


def bgr_to_qimage(frame: np.ndarray) -> QImage:
    """Copy a BGR frame into an RGB QImage that owns its pixels."""
    height, width = frame.shape[:2]
    rgb = np.ascontiguousarray(frame[:, :, ::-1])
    return QImage(
        rgb.data,
        width,
        height,
        width * 3,
        QImage.Format.Format_RGB888,
    ).copy()
