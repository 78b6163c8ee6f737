"""Device Schemas — request bodies posted by the web app and pet firmware.

Invariants:
    - Fields are optional at the schema level: routes emit the exact
      "Missing required fields" style messages firmware already parses
    - Pet names are stripped before they reach a service

Design Decisions:
    - camelCase aliases (CamelModel): firmware and web client send camelCase JSON
"""

from typing import Any

from pydantic import field_validator

from ganamos.schemas.base import CamelModel


class DeviceRegisterRequest(CamelModel):
    device_code: str | None = None
    pet_name: str | None = None
    pet_type: str | None = None
    target_user_id: str | None = None

    @field_validator("pet_name", "device_code")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return v.strip() if isinstance(v, str) else v


class DeviceUpdateRequest(CamelModel):
    device_id: str | None = None
    pet_name: str | None = None
    pet_type: str | None = None
    active_user_id: str | None = None

    @field_validator("pet_name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return v.strip() if isinstance(v, str) else v


class SpendCoinsRequest(CamelModel):
    amount: float | None = None
    action: str | None = None


class EconomySyncRequest(CamelModel):
    spend_id: str | None = None
    timestamp: int | None = None
    amount: float | None = None
    action: str | None = None


class JobCompleteRequest(CamelModel):
    job_id: str | None = None


class GameScoreRequest(CamelModel):
    score: Any = None
