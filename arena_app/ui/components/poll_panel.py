"""Component for watching poll tallies and closing questions."""

from __future__ import annotations

from typing import Callable

from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from arena_app.constants.ui_constants import (
    POLL_CLOSE_BUTTON,
    POLL_RESET_BUTTON,
    POLL_TALLY_ROW_TEMPLATE,
)
from arena_app.core.models import PollCloseResult, PollQuestion
from arena_app.ui.dialog_helpers import confirm_close_poll, confirm_reset_poll


class PollPanel(QWidget):
    """Shows the tally of one poll question at a time."""

    def __init__(
        self,
        questions: list[PollQuestion],
        on_close: Callable[[str], None],
        on_reset: Callable[[str], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.questions = list(questions)
        self.on_close = on_close
        self.on_reset = on_reset
        self._tally_key: tuple = ()

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.question_combo = QComboBox(self)
        for question in self.questions:
            self.question_combo.addItem(question.question, question.id)
        self.question_combo.currentIndexChanged.connect(self._handle_question_changed)
        layout.addWidget(self.question_combo)

        self.status_label = QLabel("", self)
        layout.addWidget(self.status_label)

        self.tally_list = QListWidget(self)
        layout.addWidget(self.tally_list, stretch=1)

        self.result_label = QLabel("", self)
        self.result_label.setWordWrap(True)
        layout.addWidget(self.result_label)

        button_row = QHBoxLayout()
        self.close_button = QPushButton(POLL_CLOSE_BUTTON, self)
        self.close_button.clicked.connect(self._handle_close_click)
        button_row.addWidget(self.close_button)

        self.reset_button = QPushButton(POLL_RESET_BUTTON, self)
        self.reset_button.clicked.connect(self._handle_reset_click)
        button_row.addWidget(self.reset_button)
        button_row.addStretch()
        layout.addLayout(button_row)

    def current_question(self) -> PollQuestion | None:
        index = self.question_combo.currentIndex()
        if 0 <= index < len(self.questions):
            return self.questions[index]
        return None

    def current_question_id(self) -> str | None:
        question = self.current_question()
        return question.id if question else None

    def update_tally(self, question_id: str, tally: dict[int, int], closed: bool) -> None:
        question = self.current_question()
        if question is None or question.id != question_id:
            return
        key = (question_id, tuple(sorted(tally.items())), closed)
        if key == self._tally_key:
            return
        self._tally_key = key
        self.tally_list.clear()
        for index, option in enumerate(question.options):
            QListWidgetItem(
                POLL_TALLY_ROW_TEMPLATE.format(option=option, count=tally.get(index, 0)),
                self.tally_list,
            )
        total = sum(tally.values())
        self.status_label.setText(f"{'Closed' if closed else 'Open'} - {total} vote(s)")
        self.close_button.setEnabled(not closed)

    def show_result(self, result: PollCloseResult) -> None:
        question = self.current_question()
        if question is None or question.id != result.question_id:
            return
        if not result.winning_options:
            self.result_label.setText("Closed with no votes; nobody was awarded points.")
            return
        winners = ", ".join(question.options[index] for index in sorted(result.winning_options))
        self.result_label.setText(f"Winner(s): {winners}. {len(result.awards)} voter(s) awarded.")

    def _handle_question_changed(self, _index: int) -> None:
        self._tally_key = ()
        self.result_label.setText("")
        self.tally_list.clear()

    def _handle_close_click(self) -> None:
        question = self.current_question()
        if question is not None and confirm_close_poll(self, question.question):
            self.on_close(question.id)

    def _handle_reset_click(self) -> None:
        question = self.current_question()
        if question is not None and confirm_reset_poll(self, question.question):
            self.result_label.setText("")
            self.on_reset(question.id)

    def apply_font_size(self, font_size: int) -> None:
        self.tally_list.setStyleSheet(f"font-size: {font_size}pt;")
        self.question_combo.setStyleSheet(f"font-size: {font_size}pt;")
