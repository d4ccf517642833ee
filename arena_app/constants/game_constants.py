"""Game rule constants shared between the core services and the API."""

ACCESS_CODE_LENGTH: int = 4

# Poll payouts
POLL_WINNER_BONUS: int = 5
POLL_PARTICIPATION_POINTS: int = 1

# Change feed
FEED_RECONNECT_BACKOFF_SECONDS: float = 2.0
FEED_RESOURCES: tuple[str, ...] = ("game_state", "active_challenges", "users", "poll_votes")

DEFAULT_LEADERBOARD_SIZE: int = 10

# Host account created by the admin console on start-up
BOOTSTRAP_ADMIN_NAME: str = "Host"
BOOTSTRAP_ADMIN_CODE: str = "0000"

# Emoji Battle: (response time limit in ms, points)
EMOJI_POINT_TIERS: tuple[tuple[int, int], ...] = ((1000, 15), (2000, 10))
EMOJI_SLOW_POINTS: int = 5

LUCKY_TAP_POINTS: int = 10
SHAKE_POINTS_PER_SHAKE: int = 1

# Match the Logos: base award plus (finish time limit in ms, bonus)
MATCH_LOGOS_BASE_POINTS: int = 10
MATCH_LOGOS_TIME_BONUS: tuple[tuple[int, int], ...] = ((20000, 5), (30000, 3), (50000, 2))
