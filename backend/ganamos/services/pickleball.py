"""Pickleball — lobby creation, joining, host state changes, and results.

Invariants:
    - A host has at most one active (lobby/countdown/playing) game; creating a
      new one cancels the rest
    - Joining is allowed only in lobby/countdown and before lobby_expires_at
    - Expired lobbies are cancelled on the access that notices them
    - Only the host device may change state or report results
    - Completion is idempotent: a completed game is never overwritten

Design Decisions:
    - Seating and expiry rules live in core/pickleball_lobby.py; this module only
      loads rows, applies those rules, and persists the outcome
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.core.domain_types import (
    ACTIVE_GAME_STATUSES, JOINABLE_GAME_STATUSES, GameStatus, DeviceStatus,
    MembershipStatus, iso,
)
from ganamos.core.errors import InvalidRequestError, ResourceNotFoundError
from ganamos.core.pickleball_lobby import (
    LobbyFullError, add_player, build_player, can_start, find_player,
    is_lobby_expired, lobby_expiry, public_players,
)
from ganamos.db.base import utcnow
from ganamos.models import Device, GroupMember, PickleballGame
from ganamos.services.lookups import approved_group_ids, get_device, parse_uuid

logger = logging.getLogger(__name__)

HOST_ACTIONS = {
    "start_countdown": GameStatus.COUNTDOWN,
    "start_game": GameStatus.PLAYING,
    "cancel": GameStatus.CANCELLED,
}


async def _get_game(db: AsyncSession, game_id, host_device_id=None):
    game_uuid = parse_uuid(game_id)
    if game_uuid is None:
        return None
    query = select(PickleballGame).where(PickleballGame.id == game_uuid)
    if host_device_id is not None:
        host_uuid = parse_uuid(host_device_id)
        if host_uuid is None:
            return None
        query = query.where(PickleballGame.host_device_id == host_uuid)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def count_potential_players(db: AsyncSession, host: Device) -> int:
    """Paired devices owned by other approved members of the host's groups."""
    group_ids = await approved_group_ids(db, host.user_id)
    if not group_ids:
        return 0
    member_ids = (
        select(GroupMember.user_id)
        .where(
            GroupMember.group_id.in_(group_ids),
            GroupMember.status == MembershipStatus.APPROVED.value,
            GroupMember.user_id != host.user_id,
        )
        .distinct()
    )
    result = await db.execute(
        select(Device.id).where(
            Device.user_id.in_(member_ids),
            Device.status == DeviceStatus.PAIRED.value,
        ),
    )
    return len(result.all())


async def create_game(
    db: AsyncSession, device_id: str, mac_address: str,
) -> dict:
    device = await get_device(db, device_id, paired_only=True)
    if device is None:
        raise ResourceNotFoundError("Device not found or not paired")
    device.mac_address = mac_address

    now = utcnow()
    await db.execute(
        update(PickleballGame)
        .where(
            PickleballGame.host_device_id == device.id,
            PickleballGame.status.in_(ACTIVE_GAME_STATUSES),
        )
        .values(status=GameStatus.CANCELLED.value, updated_at=now),
    )
    potential = await count_potential_players(db, device)

    host = build_player(
        user_id=str(device.user_id),
        device_id=str(device.id),
        pet_name=device.pet_name,
        mac_address=mac_address,
        index=0,
        joined_at=now,
    )
    game = PickleballGame(
        host_device_id=device.id,
        host_user_id=device.user_id,
        status=GameStatus.LOBBY.value,
        players=[host],
        lobby_expires_at=lobby_expiry(now),
    )
    db.add(game)
    await db.commit()
    logger.info(
        "Pickleball lobby created",
        extra={"game_id": game.id, "device_id": device.id},
    )
    return {
        "gameId": str(game.id),
        "lobbyExpiresAt": iso(game.lobby_expires_at),
        "potentialPlayers": potential,
    }


async def join_game(
    db: AsyncSession, device_id: str, game_id: str, mac_address: str,
) -> dict:
    device = await get_device(db, device_id, paired_only=True)
    if device is None:
        raise ResourceNotFoundError("Device not found")
    device.mac_address = mac_address
    await db.commit()

    game = await _get_game(db, game_id)
    if game is None:
        raise ResourceNotFoundError("Game not found")
    if game.status not in JOINABLE_GAME_STATUSES:
        raise InvalidRequestError("Game is not accepting players")

    now = utcnow()
    if is_lobby_expired(game.lobby_expires_at, now):
        game.status = GameStatus.CANCELLED.value
        await db.commit()
        raise InvalidRequestError("Game lobby has expired")

    players = list(game.players or [])
    if find_player(players, str(device.id)) is not None:
        return {
            "alreadyJoined": True,
            "players": players,
            "playerCount": len(players),
        }

    try:
        players, player = add_player(
            players,
            user_id=str(device.user_id),
            device_id=str(device.id),
            pet_name=device.pet_name,
            mac_address=mac_address,
            joined_at=now,
        )
    except LobbyFullError as e:
        raise InvalidRequestError(str(e)) from e

    game.players = players
    await db.commit()
    logger.info(
        f"Device joined as {player['side']}/{player['position']}",
        extra={"game_id": game.id, "device_id": device.id},
    )
    return {
        "players": players,
        "playerCount": len(players),
        "yourSide": player["side"],
        "yourPosition": player["position"],
    }


async def game_state(db: AsyncSession, game_id: str) -> dict:
    game = await _get_game(db, game_id)
    if game is None:
        raise ResourceNotFoundError("Game not found")

    players = list(game.players or [])
    if (
        game.status == GameStatus.LOBBY.value
        and is_lobby_expired(game.lobby_expires_at, utcnow())
        and not can_start(players)
    ):
        game.status = GameStatus.CANCELLED.value
        await db.commit()
        return {
            "status": GameStatus.CANCELLED.value,
            "reason": "lobby_expired",
            "players": [],
            "playerCount": 0,
        }

    host = find_player(players, str(game.host_device_id))
    return {
        "gameId": str(game.id),
        "status": game.status,
        "players": public_players(players),
        "playerCount": len(players),
        "hostDeviceId": str(game.host_device_id),
        "hostMac": host.get("macAddress") if host else None,
        "lobbyExpiresAt": iso(game.lobby_expires_at),
        "scoreLeft": game.score_left,
        "scoreRight": game.score_right,
    }


async def apply_host_action(
    db: AsyncSession, game_id: str, device_id: str, action: str,
) -> str:
    game = await _get_game(db, game_id, host_device_id=device_id)
    if game is None:
        raise ResourceNotFoundError("Game not found or you are not the host")

    target = HOST_ACTIONS.get(action)
    if target is None:
        raise InvalidRequestError("Invalid action")
    if target is GameStatus.COUNTDOWN and not can_start(game.players or []):
        raise InvalidRequestError("Need at least 2 players to start")

    game.status = target.value
    await db.commit()
    logger.info(f"Host set game to {target.value}", extra={"game_id": game.id})
    return target.value


async def complete_game(
    db: AsyncSession,
    game_id: str,
    device_id: str,
    *,
    score_left: int | None,
    score_right: int | None,
    winner_side: str,
) -> dict:
    game = await _get_game(db, game_id, host_device_id=device_id)
    if game is None:
        raise ResourceNotFoundError("Game not found or not host")
    if game.status == GameStatus.COMPLETED.value:
        return {"alreadyCompleted": True}

    game.status = GameStatus.COMPLETED.value
    game.score_left = score_left or 0
    game.score_right = score_right or 0
    game.winner_side = winner_side
    game.completed_at = utcnow()
    await db.commit()
    logger.info(
        f"Game completed, {winner_side} side won", extra={"game_id": game.id},
    )
    return {
        "scoreLeft": score_left,
        "scoreRight": score_right,
        "winnerSide": winner_side,
    }
