"""Pickleball Lobby — pure rules for seating devices and expiring lobbies.

Invariants:
    - Seats are assigned by join order: left/top, right/top, right/bottom, left/bottom
    - At most MAX_PLAYERS players; a device occupies at most one seat
    - Lobby lifetime is LOBBY_SECONDS from creation, checked lazily on access
    - A game needs MIN_PLAYERS to leave the lobby

Design Decisions:
    - Players are plain dicts (camelCase keys) because they are persisted as JSON
      and returned to devices unchanged
    - Functions return new lists; callers assign them back so the ORM sees the change
"""

from datetime import datetime, timedelta

from ganamos.core.domain_types import CourtSide, CourtPosition, as_utc, iso

MAX_PLAYERS = 4
MIN_PLAYERS = 2
LOBBY_SECONDS = 60

SEAT_ORDER: tuple[tuple[CourtSide, CourtPosition], ...] = (
    (CourtSide.LEFT, CourtPosition.TOP),
    (CourtSide.RIGHT, CourtPosition.TOP),
    (CourtSide.RIGHT, CourtPosition.BOTTOM),
    (CourtSide.LEFT, CourtPosition.BOTTOM),
)

# Keys a device sees in game-state polling (no user ids)
PUBLIC_PLAYER_KEYS = (
    "deviceId", "petName", "petInitial", "macAddress", "side", "position",
)


class LobbyFullError(ValueError):
    pass


def lobby_expiry(created_at: datetime) -> datetime:
    return created_at + timedelta(seconds=LOBBY_SECONDS)


def is_lobby_expired(lobby_expires_at: datetime, now: datetime) -> bool:
    return as_utc(now) > as_utc(lobby_expires_at)


def pet_initial(pet_name: str | None) -> str:
    return (pet_name or "?")[:1].upper()


def seat_for_index(index: int) -> tuple[str, str]:
    """Side/position for the player at `index` (0-based join order)."""
    if not 0 <= index < MAX_PLAYERS:
        raise LobbyFullError(f"Game is full ({MAX_PLAYERS} players max)")
    side, position = SEAT_ORDER[index]
    return side.value, position.value


def build_player(
    *,
    user_id: str,
    device_id: str,
    pet_name: str | None,
    mac_address: str,
    index: int,
    joined_at: datetime,
) -> dict:
    side, position = seat_for_index(index)
    return {
        "userId": user_id,
        "deviceId": device_id,
        "petName": pet_name,
        "petInitial": pet_initial(pet_name),
        "macAddress": mac_address,
        "side": side,
        "position": position,
        "joinedAt": iso(joined_at),
    }


def find_player(players: list[dict], device_id: str) -> dict | None:
    for player in players:
        if player.get("deviceId") == device_id:
            return player
    return None


def add_player(players: list[dict], **player_fields) -> tuple[list[dict], dict]:
    """Seat a new player in the next free slot. Raises LobbyFullError when full."""
    if len(players) >= MAX_PLAYERS:
        raise LobbyFullError(f"Game is full ({MAX_PLAYERS} players max)")
    player = build_player(index=len(players), **player_fields)
    return [*players, player], player


def public_players(players: list[dict]) -> list[dict]:
    return [{k: p.get(k) for k in PUBLIC_PLAYER_KEYS} for p in players]


def can_start(players: list[dict]) -> bool:
    return len(players) >= MIN_PLAYERS
