"""Settings dialog for the host console."""

from __future__ import annotations

from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
)

from arena_app.constants.game_constants import DEFAULT_LEADERBOARD_SIZE
from arena_app.constants.ui_constants import STATE_REFRESH_INTERVAL_MS


class SettingsDialog(QDialog):
    """Dialog for console display preferences."""

    def __init__(
        self,
        parent=None,
        ui_font_size: int = 11,
        leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE,
        refresh_interval_ms: int = STATE_REFRESH_INTERVAL_MS,
        show_admins: bool = False,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setModal(True)
        self.setMinimumWidth(400)

        self._ui_font_size = ui_font_size
        self._leaderboard_size = max(1, min(100, leaderboard_size))
        self._refresh_interval_ms = refresh_interval_ms
        self._show_admins = show_admins

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        display_group = QGroupBox("Display")
        display_layout = QVBoxLayout()
        display_group.setLayout(display_layout)

        self.font_spinbox = self._add_spin_row(
            display_layout, "Console font size:", 8, 24, self._ui_font_size, " pt"
        )
        self.leaderboard_spinbox = self._add_spin_row(
            display_layout, "Leaderboard slots (top N):", 1, 100, self._leaderboard_size
        )
        self.leaderboard_spinbox.setToolTip("Number of players shown on the leaderboard tab.")

        self.show_admins_checkbox = QCheckBox("Show hosts in participation counts")
        self.show_admins_checkbox.setChecked(self._show_admins)
        display_layout.addWidget(self.show_admins_checkbox)
        layout.addWidget(display_group)

        sync_group = QGroupBox("Sync")
        sync_layout = QVBoxLayout()
        sync_group.setLayout(sync_layout)
        self.refresh_spinbox = self._add_spin_row(
            sync_layout, "Refresh interval:", 250, 10000, self._refresh_interval_ms, " ms"
        )
        self.refresh_spinbox.setSingleStep(250)
        layout.addWidget(sync_group)

        button_row = QHBoxLayout()
        button_row.addStretch()

        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.clicked.connect(self.reject)  # type: ignore[arg-type]
        button_row.addWidget(self.cancel_button)

        self.apply_button = QPushButton("Apply")
        self.apply_button.clicked.connect(self.accept)  # type: ignore[arg-type]
        self.apply_button.setDefault(True)
        button_row.addWidget(self.apply_button)

        layout.addLayout(button_row)

    def _add_spin_row(
        self,
        layout: QVBoxLayout,
        label_text: str,
        minimum: int,
        maximum: int,
        value: int,
        suffix: str = "",
    ) -> QSpinBox:
        row = QHBoxLayout()
        spinbox = QSpinBox()
        spinbox.setRange(minimum, maximum)
        spinbox.setValue(value)
        if suffix:
            spinbox.setSuffix(suffix)
        row.addWidget(QLabel(label_text))
        row.addStretch()
        row.addWidget(spinbox)
        layout.addLayout(row)
        return spinbox

    def get_ui_font_size(self) -> int:
        return self.font_spinbox.value()

    def get_leaderboard_size(self) -> int:
        return self.leaderboard_spinbox.value()

    def get_refresh_interval_ms(self) -> int:
        return self.refresh_spinbox.value()

    def get_show_admins(self) -> bool:
        return self.show_admins_checkbox.isChecked()
