"""Component showing the live leaderboard and participation counts."""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel, QListWidget, QListWidgetItem, QVBoxLayout, QWidget

from arena_app.constants.ui_constants import (
    LEADERBOARD_EMPTY_STATE,
    LEADERBOARD_ROW_TEMPLATE,
    PARTICIPATION_TEMPLATE,
)
from arena_app.core.arena_manager import ParticipationSummary
from arena_app.core.models import LeaderboardEntry
from arena_app.styling.styles import Styles


class LeaderboardPanel(QWidget):
    """Read-only view of the top N players."""

    def __init__(self, player_url: str, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.player_url = player_url
        self.show_admins = False
        self._entries_key: tuple = ()

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.network_label = QLabel(f"Players connect to: {self.player_url}", self)
        self.network_label.setWordWrap(True)
        self.network_label.setStyleSheet(Styles.get_large_label_style())
        layout.addWidget(self.network_label)

        self.participation_label = QLabel(PARTICIPATION_TEMPLATE.format(players=0, live=0), self)
        layout.addWidget(self.participation_label)

        self.leader_label = QLabel("", self)
        self.leader_label.setStyleSheet(Styles.get_leader_label_style())
        layout.addWidget(self.leader_label)

        self.entry_list = QListWidget(self)
        self.entry_list.setAlternatingRowColors(True)
        layout.addWidget(self.entry_list, stretch=1)

        self.empty_label = QLabel(LEADERBOARD_EMPTY_STATE, self)
        self.empty_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.empty_label)

    def update_entries(self, entries: list[LeaderboardEntry]) -> None:
        key = tuple((entry.participant.id, entry.participant.score) for entry in entries)
        if key == self._entries_key:
            return
        self._entries_key = key
        self.entry_list.clear()
        for entry in entries:
            QListWidgetItem(
                LEADERBOARD_ROW_TEMPLATE.format(
                    rank=entry.rank,
                    name=entry.participant.display_name,
                    score=entry.participant.score,
                ),
                self.entry_list,
            )
        self.empty_label.setVisible(not entries)
        self.leader_label.setText(f"Leader: {entries[0].participant.display_name}" if entries else "")

    def update_participation(self, summary: ParticipationSummary) -> None:
        players = summary.player_count + (summary.admin_count if self.show_admins else 0)
        self.participation_label.setText(
            PARTICIPATION_TEMPLATE.format(players=players, live=len(summary.live_challenge_ids))
        )

    def apply_font_size(self, font_size: int) -> None:
        self.entry_list.setStyleSheet(f"font-size: {font_size}pt;")
        self.participation_label.setStyleSheet(f"font-size: {font_size}pt;")
