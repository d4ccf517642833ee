"""Component listing the challenge catalog with start/end controls."""

from __future__ import annotations

from typing import Callable

from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from arena_app.constants.ui_constants import (
    CHALLENGE_END_BUTTON,
    CHALLENGE_LIVE_SUFFIX,
    CHALLENGE_RESTART_BUTTON,
    CHALLENGE_ROW_TEMPLATE,
    CHALLENGE_START_BUTTON,
    END_ALL_BUTTON,
)
from arena_app.core.arena_manager import ChallengeOverview
from arena_app.styling.styles import Styles
from arena_app.ui.dialog_helpers import confirm_end_all_challenges, show_warning


class ChallengePanel(QWidget):
    """Lets the host start, restart and end challenges."""

    def __init__(
        self,
        on_start: Callable[[str], None],
        on_end: Callable[[str], None],
        on_end_all: Callable[[], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.on_start = on_start
        self.on_end = on_end
        self.on_end_all = on_end_all
        self._overview: list[ChallengeOverview] = []
        self._snapshot_key: tuple = ()

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.live_label = QLabel("No challenge is live.", self)
        self.live_label.setStyleSheet(Styles.get_large_label_style())
        layout.addWidget(self.live_label)

        self.challenge_list = QListWidget(self)
        self.challenge_list.setAlternatingRowColors(True)
        self.challenge_list.currentRowChanged.connect(self._update_buttons)
        layout.addWidget(self.challenge_list, stretch=1)

        self.description_label = QLabel("", self)
        self.description_label.setWordWrap(True)
        layout.addWidget(self.description_label)

        button_row = QHBoxLayout()
        self.start_button = QPushButton(CHALLENGE_START_BUTTON, self)
        self.start_button.clicked.connect(self._handle_start_click)
        button_row.addWidget(self.start_button)

        self.end_button = QPushButton(CHALLENGE_END_BUTTON, self)
        self.end_button.clicked.connect(self._handle_end_click)
        button_row.addWidget(self.end_button)

        button_row.addStretch()
        self.end_all_button = QPushButton(END_ALL_BUTTON, self)
        self.end_all_button.clicked.connect(self._handle_end_all_click)
        button_row.addWidget(self.end_all_button)
        layout.addLayout(button_row)

        self._update_buttons()

    def selected_challenge(self) -> ChallengeOverview | None:
        row = self.challenge_list.currentRow()
        if 0 <= row < len(self._overview):
            return self._overview[row]
        return None

    def live_count(self) -> int:
        return sum(1 for item in self._overview if item.is_active)

    def update_overview(self, overview: list[ChallengeOverview]) -> None:
        key = tuple((item.challenge.id, item.is_active, item.record and item.record.start_time) for item in overview)
        if key == self._snapshot_key:
            return
        self._snapshot_key = key
        self._overview = list(overview)

        selected_row = self.challenge_list.currentRow()
        self.challenge_list.blockSignals(True)
        self.challenge_list.clear()
        for item in overview:
            text = CHALLENGE_ROW_TEMPLATE.format(
                title=item.challenge.title, duration=item.challenge.duration_hint
            )
            if item.is_active:
                text += CHALLENGE_LIVE_SUFFIX
            QListWidgetItem(text, self.challenge_list)
        if overview:
            self.challenge_list.setCurrentRow(max(0, min(selected_row, len(overview) - 1)))
        self.challenge_list.blockSignals(False)

        live_titles = [item.challenge.title for item in overview if item.is_active]
        if live_titles:
            self.live_label.setText("Live: " + ", ".join(live_titles))
            self.live_label.setStyleSheet(Styles.get_live_label_style() + " font-size: 16pt;")
        else:
            self.live_label.setText("No challenge is live.")
            self.live_label.setStyleSheet(Styles.get_large_label_style())
        self._update_buttons()

    def _update_buttons(self, *_args) -> None:
        selected = self.selected_challenge()
        self.start_button.setEnabled(selected is not None)
        self.end_button.setEnabled(selected is not None and selected.is_active)
        self.end_all_button.setEnabled(self.live_count() > 0)
        if selected is None:
            self.description_label.setText("")
            return
        self.start_button.setText(CHALLENGE_RESTART_BUTTON if selected.is_active else CHALLENGE_START_BUTTON)
        self.description_label.setText(selected.challenge.description)

    def _handle_start_click(self) -> None:
        selected = self.selected_challenge()
        if selected is None:
            show_warning(self, "No challenge", "Select a challenge to start.")
            return
        self.on_start(selected.challenge.id)

    def _handle_end_click(self) -> None:
        selected = self.selected_challenge()
        if selected is not None:
            self.on_end(selected.challenge.id)

    def _handle_end_all_click(self) -> None:
        if confirm_end_all_challenges(self, self.live_count()):
            self.on_end_all()

    def apply_font_size(self, font_size: int) -> None:
        self.challenge_list.setStyleSheet(f"font-size: {font_size}pt;")
        for button in (self.start_button, self.end_button, self.end_all_button):
            button.setStyleSheet(f"font-size: {font_size}pt;")
