"""Maps Routes — travel-time estimates and a key-hiding Static Maps proxy.

Invariants:
    - /travel-times always answers 200 with {walking, driving}; any failure
      for a mode yields null for that mode
    - /maps/staticmap never exposes the API key to the browser
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response

from ganamos.config import Settings, get_settings
from ganamos.infrastructure.google_maps import GoogleMapsClient, parse_coordinates
from ganamos.mocks.maps import mock_maps_store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["maps"])


def get_maps_client(settings: Settings = Depends(get_settings)) -> GoogleMapsClient:
    return GoogleMapsClient(settings)


@router.get("/travel-times")
async def travel_times(
    origin: str | None = Query(None),
    destination: str | None = Query(None),
    maps: GoogleMapsClient = Depends(get_maps_client),
):
    return await maps.travel_times(origin, destination)


@router.get("/maps/staticmap")
async def static_map(
    latitude: str = Query("0"),
    longitude: str = Query("0"),
    zoom: str = Query("15"),
    size: str = Query("640x400"),
    scale: str = Query("2"),
    maptype: str = Query("roadmap"),
    markers: str | None = Query(None),
    style: str = Query(""),
    maps: GoogleMapsClient = Depends(get_maps_client),
):
    lat, lng = parse_coordinates(latitude, longitude)

    if maps.use_mocks:
        width, _, height = size.partition("x")
        svg = mock_maps_store.static_map_svg(
            lat, lng,
            int(width) if width.isdigit() else 640,
            int(height) if height.isdigit() else 400,
            int(zoom) if zoom.isdigit() else 15,
        )
        return Response(
            svg, media_type="image/svg+xml", headers={"Cache-Control": "no-cache"},
        )

    if not maps.api_key:
        logger.error("Google Maps API key not configured")
        return PlainTextResponse("Maps API not configured", status_code=500)

    image = await maps.static_map(
        lat, lng,
        zoom=zoom, size=size, scale=scale, maptype=maptype,
        markers=markers, style=style,
    )
    if image.status_code >= 400:
        logger.error(f"Google Static Maps returned {image.status_code}")
        return PlainTextResponse("Failed to fetch map", status_code=image.status_code)
    return Response(
        image.content,
        media_type=image.content_type,
        headers={"Cache-Control": "public, max-age=3600"},
    )
