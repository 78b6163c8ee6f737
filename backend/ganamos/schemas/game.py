"""Pickleball Schemas — lobby, state, and completion bodies sent by devices."""

from pydantic import field_validator

from ganamos.schemas.base import CamelModel


class PickleballCreateRequest(CamelModel):
    device_id: str | None = None
    mac_address: str | None = None

    @field_validator("mac_address")
    @classmethod
    def normalize_mac(cls, v: str | None) -> str | None:
        return v.strip().upper() if isinstance(v, str) and v.strip() else None


class PickleballJoinRequest(PickleballCreateRequest):
    game_id: str | None = None


class PickleballStateRequest(CamelModel):
    game_id: str | None = None
    device_id: str | None = None
    action: str | None = None


class PickleballCompleteRequest(CamelModel):
    game_id: str | None = None
    device_id: str | None = None
    score_left: int | None = None
    score_right: int | None = None
    winner_side: str | None = None
