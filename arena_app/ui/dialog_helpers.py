"""Helper functions for the dialogs the host console shows."""

from __future__ import annotations

from PySide6.QtGui import QFont
from PySide6.QtWidgets import QMessageBox, QWidget


def _apply_optional_font(widget: QWidget, font_point_size: int | None) -> None:
    if font_point_size is None or font_point_size <= 0:
        return

    font: QFont = widget.font()
    font.setPointSize(font_point_size)
    widget.setFont(font)


def _confirm(parent: QWidget, title: str, message: str) -> bool:
    reply = QMessageBox.question(
        parent,
        title,
        message,
        QMessageBox.Yes | QMessageBox.No,
        QMessageBox.No,
    )
    return reply == QMessageBox.Yes


def confirm_end_all_challenges(parent: QWidget, live_count: int) -> bool:
    """Ask before ending every live challenge.

    Args:
        parent: Parent widget for the dialog
        live_count: Number of challenges that are currently live

    Returns:
        True if the host confirmed, False otherwise
    """
    return _confirm(
        parent,
        "End All Challenges",
        f"End all {live_count} live challenge(s)? Players still playing will be stopped.",
    )


def confirm_close_poll(parent: QWidget, question: str) -> bool:
    """Ask before closing a poll question; closing pays out points and cannot be undone."""
    return _confirm(
        parent,
        "Close Question",
        f"Close \"{question}\" and award points to its voters?",
    )


def confirm_reset_poll(parent: QWidget, question: str) -> bool:
    return _confirm(
        parent,
        "Reset Question",
        f"Delete every vote for \"{question}\" and reopen it? Points already awarded stay.",
    )


def show_error(parent: QWidget, title: str, message: str) -> None:
    QMessageBox.critical(parent, title, message)


def show_info(
    parent: QWidget,
    title: str,
    message: str,
    *,
    font_point_size: int | None = None,
) -> None:
    """Show an information dialog, optionally with a larger font.

    Args:
        parent: Parent widget for the dialog
        title: Dialog title
        message: Information message
        font_point_size: Point size for label and button text
    """
    msg_box = QMessageBox(parent)
    msg_box.setIcon(QMessageBox.Information)
    msg_box.setWindowTitle(title)
    msg_box.setText(message)
    msg_box.setStandardButtons(QMessageBox.Ok)
    _apply_optional_font(msg_box, font_point_size)
    if font_point_size is not None and font_point_size > 0:
        msg_box.setStyleSheet(
            f"QLabel {{ font-size: {font_point_size}pt; }}\n"
            f"QPushButton {{ font-size: {font_point_size}pt; }}"
        )
    msg_box.exec()


def show_warning(parent: QWidget, title: str, message: str) -> None:
    QMessageBox.warning(parent, title, message)
