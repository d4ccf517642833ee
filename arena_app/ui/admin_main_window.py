"""Qt main window for the host: challenges, leaderboard and polls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Coroutine

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from arena_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION, HELP_TEXT
from arena_app.constants.game_constants import DEFAULT_LEADERBOARD_SIZE
from arena_app.constants.ui_constants import (
    STATE_REFRESH_INTERVAL_MS,
    STUDENT_URL_PLACEHOLDER,
    TAB_CHALLENGES,
    TAB_LEADERBOARD,
    TAB_POLLS,
    WINDOW_TITLE,
)
from arena_app.core.arena_manager import ArenaManager, ChallengeOverview, ParticipationSummary
from arena_app.core.errors import ArenaError
from arena_app.core.models import LeaderboardEntry
from arena_app.styling.styles import Styles
from arena_app.ui.components.challenge_panel import ChallengePanel
from arena_app.ui.components.leaderboard_panel import LeaderboardPanel
from arena_app.ui.components.poll_panel import PollPanel
from arena_app.ui.dialog_helpers import show_error, show_info
from arena_app.ui.settings_dialog import SettingsDialog

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _ConsoleState:
    overview: list[ChallengeOverview]
    entries: list[LeaderboardEntry]
    summary: ParticipationSummary
    question_id: str | None
    tally: dict[int, int]
    poll_closed: bool


class AdminMainWindow(QMainWindow):
    """Host console; every action is sent as the given admin participant."""

    def __init__(self, arena_manager: ArenaManager, admin_id: str, player_url: str | None = None) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)

        self.arena_manager = arena_manager
        self.admin_id = admin_id
        self.player_url = player_url or STUDENT_URL_PLACEHOLDER

        self._ui_font_size: int = 11
        self._leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE
        self._refresh_interval_ms: int = STATE_REFRESH_INTERVAL_MS
        self._show_admins: bool = False

        self._build_ui()
        self._configure_refresh_timer()
        self._apply_styles()
        self._refresh_state()

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)

        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        self._build_toolbar(root_layout)

        self.tabs = QTabWidget(self)
        self.challenge_panel = ChallengePanel(
            on_start=self._handle_start_challenge,
            on_end=self._handle_end_challenge,
            on_end_all=self._handle_end_all,
            parent=self,
        )
        self.leaderboard_panel = LeaderboardPanel(self.player_url, parent=self)
        self.poll_panel = PollPanel(
            self.arena_manager.poll_questions(),
            on_close=self._handle_close_poll,
            on_reset=self._handle_reset_poll,
            parent=self,
        )
        self.tabs.addTab(self.challenge_panel, TAB_CHALLENGES)
        self.tabs.addTab(self.leaderboard_panel, TAB_LEADERBOARD)
        self.tabs.addTab(self.poll_panel, TAB_POLLS)
        root_layout.addWidget(self.tabs, stretch=1)

        self.status_label = QLabel("", self)
        root_layout.addWidget(self.status_label)

    def _build_toolbar(self, layout: QVBoxLayout) -> None:
        button_row = QHBoxLayout()
        button_row.addStretch()

        self.about_button = QPushButton(f"About {APP_NAME}", self)
        self.about_button.clicked.connect(self._handle_about)
        button_row.addWidget(self.about_button)

        self.help_button = QPushButton("Help", self)
        self.help_button.clicked.connect(self._handle_help)
        button_row.addWidget(self.help_button)

        self.settings_button = QPushButton("Settings", self)
        self.settings_button.clicked.connect(self._handle_settings)
        button_row.addWidget(self.settings_button)

        layout.addLayout(button_row)

    def _configure_refresh_timer(self) -> None:
        self.refresh_timer = QTimer(self)
        self.refresh_timer.setInterval(self._refresh_interval_ms)
        self.refresh_timer.timeout.connect(self._refresh_state)
        self.refresh_timer.start()

    # --- Manager calls ---

    def _run(self, coroutine: Coroutine[Any, Any, Any]) -> Any:
        """Run one manager coroutine to completion on a private event loop."""
        return asyncio.run(coroutine)

    def _run_action(self, title: str, coroutine: Coroutine[Any, Any, Any]) -> Any:
        try:
            result = self._run(coroutine)
        except ArenaError as exc:
            logger.warning("%s failed: %s", title, exc.message)
            show_error(self, title, exc.message)
            return None
        self._refresh_state()
        return result

    async def _collect_state(self, question_id: str | None) -> _ConsoleState:
        manager = self.arena_manager
        overview = await manager.challenge_overview()
        entries = await manager.leaderboard(limit=self._leaderboard_size)
        summary = await manager.participation_summary()
        tally: dict[int, int] = {}
        closed = False
        if question_id is not None:
            tally = await manager.tally(question_id)
            closed = await manager.poll_is_closed(question_id)
        return _ConsoleState(overview, entries, summary, question_id, tally, closed)

    def _refresh_state(self) -> None:
        question_id = self.poll_panel.current_question_id()
        try:
            state = self._run(self._collect_state(question_id))
        except ArenaError as exc:
            self.status_label.setText(exc.message)
            return
        self.status_label.setText("")
        self.challenge_panel.update_overview(state.overview)
        self.leaderboard_panel.update_entries(state.entries)
        self.leaderboard_panel.update_participation(state.summary)
        if state.question_id is not None:
            self.poll_panel.update_tally(state.question_id, state.tally, state.poll_closed)

    # --- Panel callbacks ---

    def _handle_start_challenge(self, challenge_id: str) -> None:
        self._run_action("Start failed", self.arena_manager.start_challenge(self.admin_id, challenge_id))

    def _handle_end_challenge(self, challenge_id: str) -> None:
        self._run_action("End failed", self.arena_manager.end_challenge(self.admin_id, challenge_id))

    def _handle_end_all(self) -> None:
        ended = self._run_action("End all failed", self.arena_manager.end_all_challenges(self.admin_id))
        if ended is not None:
            self.status_label.setText(f"Ended {len(ended)} challenge(s).")

    def _handle_close_poll(self, question_id: str) -> None:
        result = self._run_action(
            "Close question failed", self.arena_manager.close_poll_question(self.admin_id, question_id)
        )
        if result is not None:
            self.poll_panel.show_result(result)

    def _handle_reset_poll(self, question_id: str) -> None:
        self._run_action("Reset question failed", self.arena_manager.reset_poll_question(self.admin_id, question_id))

    # --- Toolbar ---

    def _handle_about(self) -> None:
        details = f"{APP_NAME} v{APP_VERSION}\nLicense: {APP_LICENSE}\n\n{APP_ABOUT_TEXT}"
        show_info(self, f"About {APP_NAME}", details)

    def _handle_help(self) -> None:
        show_info(self, f"{APP_NAME} Help", HELP_TEXT)

    def _handle_settings(self) -> None:
        dialog = SettingsDialog(
            self,
            self._ui_font_size,
            self._leaderboard_size,
            self._refresh_interval_ms,
            self._show_admins,
        )
        if dialog.exec():
            self._ui_font_size = dialog.get_ui_font_size()
            self._leaderboard_size = dialog.get_leaderboard_size()
            self._refresh_interval_ms = dialog.get_refresh_interval_ms()
            self._show_admins = dialog.get_show_admins()
            self.refresh_timer.setInterval(self._refresh_interval_ms)
            self._apply_styles()
            self._refresh_state()

    def _apply_styles(self) -> None:
        self.setStyleSheet(Styles.get_main_window_style())

        ui_style = f"font-size: {self._ui_font_size}pt;"
        for button in (self.about_button, self.help_button, self.settings_button):
            button.setStyleSheet(ui_style)

        self.challenge_panel.apply_font_size(self._ui_font_size)
        self.leaderboard_panel.apply_font_size(self._ui_font_size)
        self.leaderboard_panel.show_admins = self._show_admins
        self.poll_panel.apply_font_size(self._ui_font_size)
