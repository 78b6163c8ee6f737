"""Mock Maps — deterministic geocoding, distance matrix, and static map images.

Invariants:
    - Geocoding results are cached by "lat6,lng6" and stable across calls
    - Travel time = haversine distance (R = 6371 km) / mode speed
      (walking 5 km/h, driving 50 km/h), rounded to whole minutes
    - Distance matrix payloads mirror the Google Distance Matrix shape
"""

import math
import re

EARTH_RADIUS_KM = 6371
MODE_SPEED_KMH = {"walking": 5, "driving": 50}

_CITIES = [
    ("San Francisco", "California", "CA", "United States", "US"),
    ("New York", "New York", "NY", "United States", "US"),
    ("London", "England", "ENG", "United Kingdom", "GB"),
    ("Tokyo", "Kantō", "KT", "Japan", "JP"),
    ("Berlin", "Berlin", "BE", "Germany", "DE"),
    ("Sydney", "New South Wales", "NSW", "Australia", "AU"),
]

_HOURS = re.compile(r"(\d+)\s*hour")
_MINUTES = re.compile(r"(\d+)\s*min")


def haversine_km(
    origin_lat: float, origin_lng: float, dest_lat: float, dest_lng: float,
) -> float:
    d_lat = math.radians(dest_lat - origin_lat)
    d_lng = math.radians(dest_lng - origin_lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin_lat))
        * math.cos(math.radians(dest_lat))
        * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_minutes(total_minutes: int) -> str:
    """Render minutes the way Google Maps does ("12 min", "1 hour 5 mins")."""
    if total_minutes < 60:
        return f"{total_minutes} min"
    hours, mins = divmod(total_minutes, 60)
    return f"{hours} hour {mins} mins" if mins > 0 else f"{hours} hour"


def _duration_seconds(text: str) -> int:
    hours = _HOURS.search(text)
    minutes = _MINUTES.search(text)
    return (
        (int(hours.group(1)) if hours else 0) * 3600
        + (int(minutes.group(1)) if minutes else 0) * 60
    )


def _parse_point(value: str) -> tuple[float, float]:
    lat, lng = value.split(",")[:2]
    return float(lat), float(lng)


class MockMapsStore:
    def __init__(self):
        self._geocoding: dict[str, dict] = {}

    def geocode(self, latitude: float, longitude: float) -> dict:
        key = f"{latitude:.6f},{longitude:.6f}"
        cached = self._geocoding.get(key)
        if cached is not None:
            return cached

        index = abs(math.floor(latitude * 100 + longitude * 100)) % len(_CITIES)
        city, state, state_short, country, country_code = _CITIES[index]
        street = f"{math.floor(abs(latitude * 100))} Mock St"
        result = {
            "results": [
                {
                    "formatted_address": f"{street}, {city}, {state}, {country}",
                    "address_components": [
                        {
                            "long_name": street,
                            "short_name": street,
                            "types": ["street_address"],
                        },
                        {
                            "long_name": city,
                            "short_name": city,
                            "types": ["locality", "political"],
                        },
                        {
                            "long_name": state,
                            "short_name": state_short,
                            "types": ["administrative_area_level_1", "political"],
                        },
                        {
                            "long_name": country,
                            "short_name": country_code,
                            "types": ["country", "political"],
                        },
                    ],
                    "geometry": {"location": {"lat": latitude, "lng": longitude}},
                },
            ],
            "status": "OK",
        }
        self._geocoding[key] = result
        return result

    def travel_time(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
        mode: str,
    ) -> str:
        distance = haversine_km(origin_lat, origin_lng, dest_lat, dest_lng)
        speed = MODE_SPEED_KMH.get(mode, MODE_SPEED_KMH["driving"])
        return format_minutes(round(distance / speed * 60))

    def distance_matrix(self, origin: str, destination: str, mode: str) -> dict:
        """Single-element Distance Matrix payload for "lat,lng" endpoints."""
        origin_lat, origin_lng = _parse_point(origin)
        dest_lat, dest_lng = _parse_point(destination)
        duration_text = self.travel_time(
            origin_lat, origin_lng, dest_lat, dest_lng, mode,
        )
        distance = haversine_km(origin_lat, origin_lng, dest_lat, dest_lng)
        distance_text = (
            f"{round(distance * 1000)} m" if distance < 1 else f"{distance:.1f} km"
        )
        return {
            "status": "OK",
            "origin_addresses": [origin],
            "destination_addresses": [destination],
            "rows": [
                {
                    "elements": [
                        {
                            "status": "OK",
                            "duration": {
                                "value": _duration_seconds(duration_text),
                                "text": duration_text,
                            },
                            "distance": {
                                "value": round(distance * 1000),
                                "text": distance_text,
                            },
                        },
                    ],
                },
            ],
        }

    def static_map_svg(
        self,
        latitude: float,
        longitude: float,
        width: int = 640,
        height: int = 400,
        zoom: int = 15,
    ) -> str:
        lat_dir = "N" if latitude >= 0 else "S"
        lng_dir = "E" if longitude >= 0 else "W"
        label = f"{abs(latitude):.4f}°{lat_dir}, {abs(longitude):.4f}°{lng_dir}"
        cx, cy = width / 2, height / 2 - 20
        return f"""<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width} {height}" width="{width}" height="{height}">
  <defs>
    <pattern id="grid" width="50" height="50" patternUnits="userSpaceOnUse">
      <path d="M 50 0 L 0 0 0 50" fill="none" stroke="#e0e0e0" stroke-width="1"/>
    </pattern>
  </defs>
  <rect width="100%" height="100%" fill="#f5f5f5"/>
  <rect width="100%" height="100%" fill="url(#grid)"/>
  <g transform="translate({cx:g}, {cy:g})">
    <ellipse cx="0" cy="25" rx="8" ry="4" fill="rgba(255, 152, 0, 0.3)"/>
    <path d="M 0,-20 C -10,-20 -15,-10 -15,0 C -15,10 0,25 0,25 C 0,25 15,10 15,0 C 15,-10 10,-20 0,-20 Z" fill="#ff9800" stroke="#fff" stroke-width="2"/>
    <circle cx="0" cy="-5" r="6" fill="#fff"/>
  </g>
  <rect x="{width / 2 - 100:g}" y="{height - 50}" width="200" height="30" fill="rgba(255, 255, 255, 0.95)" stroke="#ddd" stroke-width="1" rx="4"/>
  <text x="{width / 2:g}" y="{height - 28}" font-family="Arial, sans-serif" font-size="12" fill="#333" text-anchor="middle" font-weight="500">{label}</text>
  <text x="20" y="30" font-family="Arial, sans-serif" font-size="20" fill="rgba(255, 87, 34, 0.7)" font-weight="bold" letter-spacing="2">MOCK MODE</text>
  <rect x="{width - 70}" y="20" width="50" height="24" fill="rgba(255, 255, 255, 0.9)" stroke="#ddd" stroke-width="1" rx="3"/>
  <text x="{width - 45}" y="36" font-family="Arial, sans-serif" font-size="12" fill="#666" text-anchor="middle">Zoom {zoom}</text>
</svg>"""

    def reset(self) -> None:
        self._geocoding.clear()


mock_maps_store = MockMapsStore()
