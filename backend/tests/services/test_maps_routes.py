"""Maps routes — travel-time badges and the static map proxy."""

from unittest.mock import AsyncMock, patch

import httpx

from ganamos.infrastructure.google_maps import GoogleMapsClient, MapImage


async def test_travel_times_disabled_without_key_or_mocks(client, settings):
    settings.use_mocks = False
    resp = await client.get(
        "/api/travel-times", params={"origin": "0,0", "destination": "0.1,0"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"walking": None, "driving": None}


async def test_travel_times_need_both_points(client):
    resp = await client.get("/api/travel-times", params={"origin": "0,0"})
    assert resp.json() == {"walking": None, "driving": None}


async def test_travel_times_from_mock_matrix(client):
    resp = await client.get(
        "/api/travel-times", params={"origin": "0,0", "destination": "0.1,0"},
    )
    assert resp.json() == {"walking": "2hr 13min", "driving": "13min"}


async def test_travel_times_one_mode_failing(client, settings):
    settings.use_mocks = False
    settings.google_maps_api_key = "key"

    async def fake_matrix(self, origin, destination, mode):
        if mode == "walking":
            raise httpx.ConnectTimeout("timed out")
        return {
            "status": "OK",
            "rows": [{"elements": [{"duration": {"text": "1 hour 5 mins"}}]}],
        }

    with patch.object(GoogleMapsClient, "_distance_matrix", fake_matrix):
        resp = await client.get(
            "/api/travel-times", params={"origin": "a", "destination": "b"},
        )
    assert resp.json() == {"walking": None, "driving": "1hr 5min"}


async def test_static_map_rejects_bad_coordinates(client):
    resp = await client.get("/api/maps/staticmap", params={"latitude": "north"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid coordinates"


async def test_static_map_mock_svg(client):
    resp = await client.get(
        "/api/maps/staticmap",
        params={"latitude": "37.7749", "longitude": "-122.4194", "zoom": "12"},
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("image/svg+xml")
    assert resp.headers["cache-control"] == "no-cache"
    assert "Zoom 12" in resp.text


async def test_static_map_without_key(client, settings):
    settings.use_mocks = False
    resp = await client.get("/api/maps/staticmap", params={"latitude": "1", "longitude": "2"})
    assert resp.status_code == 500
    assert resp.text == "Maps API not configured"


async def test_static_map_proxies_image(client, settings):
    settings.use_mocks = False
    settings.google_maps_api_key = "key"
    image = MapImage(content=b"\x89PNG", content_type="image/png", status_code=200)
    with patch.object(
        GoogleMapsClient, "static_map", AsyncMock(return_value=image),
    ) as fetch:
        resp = await client.get(
            "/api/maps/staticmap",
            params={"latitude": "1.5", "longitude": "2.5", "zoom": "10"},
        )
    assert resp.status_code == 200
    assert resp.content == b"\x89PNG"
    assert resp.headers["cache-control"] == "public, max-age=3600"
    args, kwargs = fetch.call_args
    assert args == (1.5, 2.5)
    assert kwargs["zoom"] == "10"


async def test_static_map_upstream_error(client, settings):
    settings.use_mocks = False
    settings.google_maps_api_key = "key"
    image = MapImage(content=b"denied", content_type="text/plain", status_code=403)
    with patch.object(GoogleMapsClient, "static_map", AsyncMock(return_value=image)):
        resp = await client.get("/api/maps/staticmap")
    assert resp.status_code == 403
    assert resp.text == "Failed to fetch map"
