"""Service for participant sign-up, login and admin authorization."""

from __future__ import annotations

import logging

from arena_app.constants.game_constants import ACCESS_CODE_LENGTH
from arena_app.core.errors import AuthorizationError, NotFoundError, ValidationError
from arena_app.core.models import Participant
from arena_app.core.store import DataStore

logger = logging.getLogger(__name__)

_MAX_NAME_LENGTH = 40


def validate_access_code(access_code: str) -> str:
    """Return the access code if it is exactly four ASCII digits."""
    if (
        not isinstance(access_code, str)
        or len(access_code) != ACCESS_CODE_LENGTH
        or not access_code.isascii()
        or not access_code.isdigit()
    ):
        raise ValidationError(f"Access code must be exactly {ACCESS_CODE_LENGTH} digits")
    return access_code


def normalize_display_name(display_name: str) -> str:
    cleaned = (display_name or "").strip()
    if not cleaned:
        raise ValidationError("Display name must not be empty.")
    if len(cleaned) > _MAX_NAME_LENGTH:
        raise ValidationError(f"Display name must be at most {_MAX_NAME_LENGTH} characters.")
    return cleaned


class IdentityService:
    """Maps a display name plus access code to a durable participant record."""

    def __init__(self, store: DataStore) -> None:
        self._store = store

    async def sign_up(self, display_name: str, access_code: str, is_admin: bool = False) -> Participant:
        name = normalize_display_name(display_name)
        code = validate_access_code(access_code)
        if await self._store.find_participant(name, code) is not None:
            raise ValidationError("That name and access code are already taken.")
        participant = await self._store.create_participant(name, code, is_admin=is_admin)
        logger.info("Participant %s joined as %r", participant.id, participant.display_name)
        return participant

    async def log_in(self, display_name: str, access_code: str) -> Participant:
        name = normalize_display_name(display_name)
        code = validate_access_code(access_code)
        participant = await self._store.find_participant(name, code)
        if participant is None:
            raise ValidationError("Invalid username or access code")
        return participant

    async def join(self, display_name: str, access_code: str) -> Participant:
        """Log in when the credentials exist, otherwise create the participant."""
        name = normalize_display_name(display_name)
        code = validate_access_code(access_code)
        existing = await self._store.find_participant(name, code)
        if existing is not None:
            return existing
        return await self.sign_up(name, code)

    async def ensure_admin(self, display_name: str, access_code: str) -> Participant:
        existing = await self._store.find_participant(
            normalize_display_name(display_name), validate_access_code(access_code)
        )
        if existing is not None and existing.is_admin:
            return existing
        if existing is not None:
            raise ValidationError("Host credentials belong to a player account.")
        return await self.sign_up(display_name, access_code, is_admin=True)

    async def get(self, participant_id: str) -> Participant:
        return await self._store.get_participant(participant_id)


class StoreAdminAuthorizer:
    """Resolves admin status from the store on every call; never from a client flag."""

    def __init__(self, store: DataStore) -> None:
        self._store = store

    async def is_admin(self, participant_id: str | None) -> bool:
        if not participant_id:
            return False
        try:
            participant = await self._store.get_participant(participant_id)
        except NotFoundError:
            return False
        return participant.is_admin

    async def require_admin(self, participant_id: str | None) -> None:
        if not await self.is_admin(participant_id):
            logger.warning("Rejected admin action from %s", participant_id)
            raise AuthorizationError()
