"""Qt UI constants used across the admin console."""

WINDOW_TITLE: str = "ArenaQt Host Console"
STUDENT_URL_PLACEHOLDER: str = "http://<host-ip>:8000/"
STATE_REFRESH_INTERVAL_MS: int = 1000

TAB_CHALLENGES: str = "Challenges"
TAB_LEADERBOARD: str = "Leaderboard"
TAB_POLLS: str = "Polls"

CHALLENGE_START_BUTTON: str = "Start"
CHALLENGE_RESTART_BUTTON: str = "Restart"
CHALLENGE_END_BUTTON: str = "End"
END_ALL_BUTTON: str = "End All Challenges"
CHALLENGE_ROW_TEMPLATE: str = "{title} ({duration}s)"
CHALLENGE_LIVE_SUFFIX: str = " - LIVE"

LEADERBOARD_EMPTY_STATE: str = "No players have joined yet."
LEADERBOARD_ROW_TEMPLATE: str = "#{rank}  {name}  {score} pts"
PARTICIPATION_TEMPLATE: str = "{players} player(s), {live} live challenge(s)"

POLL_CLOSE_BUTTON: str = "Close Question"
POLL_RESET_BUTTON: str = "Reset Question"
POLL_TALLY_ROW_TEMPLATE: str = "{option}: {count} vote(s)"
