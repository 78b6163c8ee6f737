"""Google Maps Client — Distance Matrix travel times and Static Maps proxying.

Invariants:
    - Each travel mode is fetched independently; a failed mode yields None and
      never fails the other
    - Distance Matrix calls time out after 5 seconds
    - In mock mode no network call is made; the mock maps store answers instead
    - The API key never leaves the server

Design Decisions:
    - Thin wrapper over httpx.AsyncClient so routes stay free of URL building
      and tests can patch one method
"""

import asyncio
import logging
import math
from dataclasses import dataclass

import httpx

from ganamos.config import Settings
from ganamos.core.errors import InvalidRequestError
from ganamos.core.travel_format import compact_duration
from ganamos.mocks.maps import mock_maps_store

logger = logging.getLogger(__name__)

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"
TRAVEL_MODES = ("walking", "driving")
DISTANCE_MATRIX_TIMEOUT = 5.0
STATIC_MAP_TIMEOUT = 10.0


@dataclass(frozen=True)
class MapImage:
    content: bytes
    content_type: str
    status_code: int


def parse_coordinates(latitude: str, longitude: str) -> tuple[float, float]:
    """Parse query-string coordinates, raising InvalidRequestError on garbage."""
    try:
        lat, lng = float(latitude), float(longitude)
    except ValueError:
        raise InvalidRequestError("Invalid coordinates") from None
    if math.isnan(lat) or math.isnan(lng):
        raise InvalidRequestError("Invalid coordinates")
    return lat, lng


def duration_text(payload: dict) -> str | None:
    """First element's duration text from a Distance Matrix payload."""
    if payload.get("status") != "OK":
        return None
    try:
        return payload["rows"][0]["elements"][0]["duration"]["text"]
    except (KeyError, IndexError, TypeError):
        return None


class GoogleMapsClient:
    def __init__(self, settings: Settings):
        self.api_key = settings.google_maps_api_key
        self.use_mocks = settings.use_mocks

    @property
    def enabled(self) -> bool:
        return bool(self.api_key) or self.use_mocks

    async def _distance_matrix(
        self, origin: str, destination: str, mode: str,
    ) -> dict:
        if self.use_mocks:
            return mock_maps_store.distance_matrix(origin, destination, mode)
        params = {
            "origins": origin,
            "destinations": destination,
            "mode": mode,
            "key": self.api_key,
        }
        async with httpx.AsyncClient(timeout=DISTANCE_MATRIX_TIMEOUT) as client:
            resp = await client.get(DISTANCE_MATRIX_URL, params=params)
            resp.raise_for_status()
            return resp.json()

    async def travel_time(self, origin: str, destination: str, mode: str) -> str | None:
        try:
            payload = await self._distance_matrix(origin, destination, mode)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Distance Matrix {mode} lookup failed: {e}")
            return None
        text = duration_text(payload)
        return compact_duration(text) if text else None

    async def travel_times(self, origin: str, destination: str) -> dict:
        """{"walking": str | None, "driving": str | None}, fetched concurrently."""
        if not self.enabled or not origin or not destination:
            return {mode: None for mode in TRAVEL_MODES}
        results = await asyncio.gather(
            *(self.travel_time(origin, destination, mode) for mode in TRAVEL_MODES),
        )
        return dict(zip(TRAVEL_MODES, results))

    async def static_map(
        self,
        latitude: float,
        longitude: float,
        *,
        zoom: str = "15",
        size: str = "640x400",
        scale: str = "2",
        maptype: str = "roadmap",
        markers: str | None = None,
        style: str = "",
    ) -> MapImage:
        params: list[tuple[str, str]] = [
            ("center", f"{latitude},{longitude}"),
            ("zoom", zoom),
            ("size", size),
            ("scale", scale),
            ("maptype", maptype),
            ("key", self.api_key or ""),
            ("markers", markers or f"color:0xF7931A|{latitude},{longitude}"),
        ]
        params.extend(("style", s) for s in style.split("|") if s)
        async with httpx.AsyncClient(timeout=STATIC_MAP_TIMEOUT) as client:
            resp = await client.get(STATIC_MAP_URL, params=params)
        return MapImage(
            content=resp.content,
            content_type=resp.headers.get("content-type", "image/png"),
            status_code=resp.status_code,
        )
