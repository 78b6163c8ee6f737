"""Alexa Schemas — account-linking and voice API request bodies."""

from typing import Any

from ganamos.schemas.base import CamelModel


class CompleteLinkingRequest(CamelModel):
    group_id: str | None = None
    client_id: str | None = None
    redirect_uri: str | None = None
    state: str | None = None


class CreateJobRequest(CamelModel):
    description: Any = None
    reward: Any = None


class SelectGroupRequest(CamelModel):
    group_id: str | None = None


class CompleteJobRequest(CamelModel):
    fixer_name: str | None = None
