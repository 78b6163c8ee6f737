"""Alexa Skill Endpoint — receives skill request envelopes and answers with speech.

Invariants:
    - Always answers 200 with an Alexa response envelope; handler failures
      become spoken apologies
    - The skill reaches the voice API over HTTP with the user's access token,
      exactly as a hosted skill would
"""

from fastapi import APIRouter, Body, Depends

from ganamos.config import Settings, get_settings
from ganamos.skill.client import GanamosClient
from ganamos.skill.handlers import ClientFactory, dispatch

router = APIRouter(prefix="/api/alexa", tags=["alexa-skill"])


def get_client_factory(settings: Settings = Depends(get_settings)) -> ClientFactory:
    def factory(access_token: str) -> GanamosClient:
        return GanamosClient(settings.ganamos_api_base_url, access_token)
    return factory


@router.post("/skill")
async def skill(
    envelope: dict = Body(...),
    clients: ClientFactory = Depends(get_client_factory),
):
    return await dispatch(envelope, clients)
