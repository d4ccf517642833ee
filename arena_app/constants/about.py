"""Static metadata describing ArenaQt."""

APP_NAME = "ArenaQt"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "ArenaQt runs live event challenges: players join from their phones with a name and "
    "a four digit access code, the host starts and stops mini-challenges from the Qt console, "
    "and everybody watches the leaderboard move in near real time."
)

HELP_TEXT = (
    "Start a challenge from the Challenges tab to make it live for every connected player. "
    "Starting a challenge that is already live simply restarts its clock. "
    "Use 'End All Challenges' to stop every live round at once.\n\n"
    "Polls are closed from the Polls tab: voters for the winning option(s) receive the "
    "winner bonus, every other voter receives participation points."
)
