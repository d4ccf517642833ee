"""Error taxonomy shared by the core services and the API layer."""

from __future__ import annotations


class ArenaError(Exception):
    """Base class for every failure the core reports to its callers."""

    user_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        self.message = message or self.user_message


class ValidationError(ArenaError):
    """Malformed input such as a bad access code or unknown credentials."""

    user_message = "The request was not valid."


class NotFoundError(ArenaError):
    user_message = "The requested item does not exist."


class ParticipantNotFound(NotFoundError):
    def __init__(self, participant_id: str) -> None:
        super().__init__(f"Participant {participant_id!r} does not exist.")
        self.participant_id = participant_id


class ChallengeNotFound(NotFoundError):
    def __init__(self, challenge_id: str) -> None:
        super().__init__(f"Challenge {challenge_id!r} does not exist.")
        self.challenge_id = challenge_id


class QuestionNotFound(NotFoundError):
    def __init__(self, question_id: str) -> None:
        super().__init__(f"Poll question {question_id!r} does not exist.")
        self.question_id = question_id


class AuthorizationError(ArenaError):
    """A non-admin attempted an admin-only mutation."""

    user_message = "Only the host can do that."


class TransientStoreError(ArenaError):
    """Network or store failure; the operation may succeed if retried."""

    user_message = "The game server is unreachable. Please try again."


class StoreUnavailable(TransientStoreError):
    pass


class ConflictError(ArenaError):
    """Concurrent write collided with another writer."""

    user_message = "Someone else changed this at the same time."
