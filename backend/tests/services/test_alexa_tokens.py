"""Alexa token service — validation, rotation, revocation, linked-account view."""

import uuid

from ganamos.services.alexa_auth import (
    generate_token_pair,
    get_linked_account,
    refresh_tokens,
    revoke_tokens,
    set_alexa_user_id,
    update_selected_group,
    validate_access_token,
    validate_client_id,
)
from tests.services.seed import ALEXA_CLIENT_ID


def test_client_id_allow_list(settings):
    assert validate_client_id(ALEXA_CLIENT_ID, settings)
    assert not validate_client_id("other", settings)
    assert not validate_client_id(None, settings)


def test_empty_allow_list_open_only_in_development(settings):
    settings.alexa_client_ids = ""
    assert validate_client_id("anything", settings)
    settings.environment = "production"
    assert not validate_client_id("anything", settings)


async def test_access_token_round_trip(test_db, settings, profile):
    pair = await generate_token_pair(test_db, settings, profile.id, ALEXA_CLIENT_ID)
    identity = await validate_access_token(test_db, settings, pair.access_token)
    assert identity.user_id == profile.id
    assert identity.client_id == ALEXA_CLIENT_ID

    account = await get_linked_account(test_db, profile.id)
    assert account["last_used_at"] is not None


async def test_refresh_token_is_not_an_access_token(test_db, settings, profile):
    pair = await generate_token_pair(test_db, settings, profile.id, ALEXA_CLIENT_ID)
    assert await validate_access_token(test_db, settings, pair.refresh_token) is None
    assert await refresh_tokens(test_db, settings, pair.access_token) is None


async def test_tampered_and_foreign_tokens_rejected(test_db, settings, profile):
    pair = await generate_token_pair(test_db, settings, profile.id, ALEXA_CLIENT_ID)
    head, body, sig = pair.access_token.split(".")
    tampered = f"{head}.{body}.{sig[::-1]}"
    assert await validate_access_token(test_db, settings, tampered) is None

    settings.alexa_jwt_secret = "a-different-secret-for-another-deploy"
    assert await validate_access_token(test_db, settings, pair.access_token) is None


async def test_reissue_replaces_previous_tokens(test_db, settings, profile):
    first = await generate_token_pair(test_db, settings, profile.id, ALEXA_CLIENT_ID)
    second = await generate_token_pair(test_db, settings, profile.id, ALEXA_CLIENT_ID)
    assert first.access_token != second.access_token
    assert await validate_access_token(test_db, settings, first.access_token) is None
    assert await validate_access_token(test_db, settings, second.access_token) is not None


async def test_refresh_keeps_selected_group(test_db, settings, profile, group):
    pair = await generate_token_pair(
        test_db, settings, profile.id, ALEXA_CLIENT_ID, group.id,
    )
    rotated = await refresh_tokens(test_db, settings, pair.refresh_token)
    assert rotated is not None
    account = await get_linked_account(test_db, profile.id)
    assert account["selected_group_id"] == group.id
    assert account["group_name"] == "Maple Street"
    assert account["group_code"] == "MAPLE1"


async def test_select_group_requires_membership_and_link(test_db, settings, profile, group):
    assert not await update_selected_group(test_db, profile.id, group.id)

    await generate_token_pair(test_db, settings, profile.id, ALEXA_CLIENT_ID)
    assert not await update_selected_group(test_db, profile.id, uuid.uuid4())
    assert not await update_selected_group(test_db, profile.id, "not-a-uuid")
    assert await update_selected_group(test_db, profile.id, str(group.id))
    account = await get_linked_account(test_db, profile.id)
    assert account["selected_group_id"] == group.id


async def test_alexa_user_id_and_revoke(test_db, settings, profile):
    assert not await set_alexa_user_id(test_db, profile.id, "amzn1.account.X")
    assert not await revoke_tokens(test_db, profile.id)

    pair = await generate_token_pair(test_db, settings, profile.id, ALEXA_CLIENT_ID)
    assert await set_alexa_user_id(test_db, profile.id, "amzn1.account.X")
    assert (await get_linked_account(test_db, profile.id))["alexa_user_id"] == "amzn1.account.X"

    assert await revoke_tokens(test_db, profile.id)
    assert await get_linked_account(test_db, profile.id) is None
    assert await validate_access_token(test_db, settings, pair.access_token) is None
