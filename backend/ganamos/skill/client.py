"""Ganamos API Client — the voice skill's view of /api/alexa.

Invariants:
    - Every request carries `Authorization: Bearer <access token>`
    - Requests time out after 10 seconds
    - create_job/complete_job return the error body on 4xx so handlers can speak
      the server's message; every other failure raises UpstreamAPIError

Design Decisions:
    - One AsyncClient per skill request (access tokens are per-user), with an
      injectable transport so tests route calls straight into the ASGI app
"""

import logging

import httpx

from ganamos.core.errors import UpstreamAPIError

logger = logging.getLogger(__name__)

API_TIMEOUT_SECONDS = 10.0


class GanamosClient:
    def __init__(
        self,
        base_url: str,
        access_token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=API_TIMEOUT_SECONDS,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def __aenter__(self) -> "GanamosClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self, method: str, path: str, *, json: dict | None = None,
        error_body_ok: bool = False,
    ) -> dict:
        try:
            resp = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Ganamos API {method} {path} failed: {e}")
            raise UpstreamAPIError(str(e)) from e
        if resp.is_success:
            return resp.json()
        if error_body_ok and resp.is_client_error:
            return resp.json()
        logger.error(
            f"Ganamos API {method} {path} returned {resp.status_code}",
            extra={"path": path},
        )
        raise UpstreamAPIError(resp.text[:200], resp.status_code)

    async def get_jobs(self) -> dict:
        return await self._request("GET", "/jobs")

    async def create_job(self, description: str, reward: int) -> dict:
        return await self._request(
            "POST", "/jobs",
            json={"description": description, "reward": reward},
            error_body_ok=True,
        )

    async def complete_job(self, job_id: str, fixer_name: str) -> dict:
        return await self._request(
            "POST", f"/jobs/{job_id}/complete",
            json={"fixerName": fixer_name},
            error_body_ok=True,
        )

    async def get_balance(self) -> dict:
        return await self._request("GET", "/balance")

