"""Travel Format — compact Distance Matrix durations for map badges."""

import re

_DAYS = re.compile(r"(\d+)\s*day")
_HOURS = re.compile(r"(\d+)\s*hour")
_MINUTES = re.compile(r"(\d+)\s*min")


def _first_int(pattern: re.Pattern, text: str) -> int:
    match = pattern.search(text)
    return int(match.group(1)) if match else 0


def compact_duration(text: str) -> str:
    """'1 hour 23 mins' -> '1hr 23min', '2 days 3 hours' -> '2d 3hr'."""
    days = _first_int(_DAYS, text)
    hours = _first_int(_HOURS, text)
    minutes = _first_int(_MINUTES, text)
    if days > 0:
        return f"{days}d {hours}hr" if hours > 0 else f"{days}d"
    if hours > 0 and minutes > 0:
        return f"{hours}hr {minutes}min"
    if hours > 0:
        return f"{hours}hr"
    if minutes > 0:
        return f"{minutes}min"
    return "1min"
