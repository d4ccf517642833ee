"""Tests for joining, logging in and admin authorization."""

import pytest

from arena_app.core.errors import AuthorizationError, ValidationError
from arena_app.core.services.identity import validate_access_code


@pytest.mark.asyncio
async def test_join_creates_then_reuses_the_participant(manager):
    created = await manager.join("Grace", "4321")
    again = await manager.join("  Grace ", "4321")

    assert again.id == created.id
    assert created.score == 0
    assert created.is_admin is False


@pytest.mark.asyncio
async def test_same_name_with_another_code_is_a_different_player(manager):
    first = await manager.join("Sam", "1111")
    second = await manager.join("Sam", "2222")

    assert first.id != second.id


@pytest.mark.asyncio
async def test_sign_up_rejects_an_existing_pair(manager):
    await manager.sign_up("Sam", "1111")

    with pytest.raises(ValidationError):
        await manager.sign_up("Sam", "1111")


@pytest.mark.asyncio
async def test_log_in_with_unknown_credentials(manager):
    await manager.sign_up("Sam", "1111")

    with pytest.raises(ValidationError, match="Invalid username or access code"):
        await manager.log_in("Sam", "9999")


@pytest.mark.parametrize("code", ["123", "12345", "12a4", "", "١٢٣٤", " 123"])
def test_access_code_must_be_four_ascii_digits(code):
    with pytest.raises(ValidationError, match="Access code must be exactly 4 digits"):
        validate_access_code(code)


@pytest.mark.asyncio
async def test_blank_display_name_is_rejected(manager):
    with pytest.raises(ValidationError):
        await manager.join("   ", "1234")


@pytest.mark.asyncio
async def test_ensure_admin_is_idempotent(manager, admin):
    again = await manager.ensure_admin(admin.display_name, admin.access_code)

    assert again.id == admin.id
    assert await manager.is_admin(admin.id)


@pytest.mark.asyncio
async def test_ensure_admin_refuses_a_player_account(manager):
    await manager.join("Host", "0000")

    with pytest.raises(ValidationError):
        await manager.ensure_admin("Host", "0000")


@pytest.mark.asyncio
@pytest.mark.parametrize("actor", [None, "", "missing"])
async def test_require_admin_rejects_unknown_actors(manager, actor):
    with pytest.raises(AuthorizationError):
        await manager.authorizer.require_admin(actor)


@pytest.mark.asyncio
async def test_require_admin_rejects_players(manager):
    player = await manager.join("Sam", "1111")

    with pytest.raises(AuthorizationError):
        await manager.authorizer.require_admin(player.id)
