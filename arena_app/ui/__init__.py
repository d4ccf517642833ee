"""Qt UI components for the host console."""

from .admin_main_window import AdminMainWindow
from .dialog_helpers import (
    confirm_close_poll,
    confirm_end_all_challenges,
    confirm_reset_poll,
    show_error,
    show_info,
    show_warning,
)

__all__ = [
    "AdminMainWindow",
    "confirm_close_poll",
    "confirm_end_all_challenges",
    "confirm_reset_poll",
    "show_error",
    "show_info",
    "show_warning",
]
