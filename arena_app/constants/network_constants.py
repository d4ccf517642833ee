"""Network configuration constants for the arena application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
ADMIN_HEADER: str = "X-Participant-Id"
