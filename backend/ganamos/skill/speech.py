"""Speech — SSML helpers and spoken formatting for voice responses.

Invariants:
    - ssml() never double-wraps text already starting with <speak>
    - speak_sats(1) == "1 sat"; every other amount is plural with separators
"""

import re
from datetime import datetime, timezone

_TAG = re.compile(r"<[^>]+>")


def speak_number(number: int | float) -> str:
    return f"{number:,}"


def speak_sats(amount: int | float) -> str:
    if amount == 1:
        return "1 sat"
    return f"{speak_number(amount)} sats"


def pause(seconds: float = 0.5) -> str:
    return f'<break time="{seconds:g}s"/>'


def emphasize(text: str, level: str = "moderate") -> str:
    return f'<emphasis level="{level}">{text}</emphasis>'


def say_as(text: str, interpret_as: str) -> str:
    return f'<say-as interpret-as="{interpret_as}">{text}</say-as>'


def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def speak_date(value: str | datetime, now: datetime | None = None) -> str:
    """Relative phrasing for the last week, "Month D" beyond that."""
    when = _parse_timestamp(value)
    now = now or datetime.now(timezone.utc)
    elapsed = (now - when).total_seconds()
    hours = int(elapsed // 3600)
    days = int(elapsed // 86400)
    if hours < 1:
        return "just now"
    if hours < 24:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    return f"{when.strftime('%B')} {when.day}"


def speak_list(items: list[str], conjunction: str = "and") -> str:
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} {conjunction} {items[1]}"
    return f"{', '.join(items[:-1])}, {conjunction} {items[-1]}"


def speak_job(job: dict, include_date: bool = False) -> str:
    speech = f"{job['title']} for {speak_sats(job['reward'])}"
    if include_date and job.get("createdAt"):
        speech += f", posted {speak_date(job['createdAt'])}"
    return speech


def ordinal(n: int) -> str:
    if 11 <= n % 100 <= 13:
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def ssml(text: str) -> str:
    if text.startswith("<speak>"):
        return text
    return f"<speak>{text}</speak>"


def strip_ssml(text: str) -> str:
    """Plain text for cards: drop every tag, keep the words."""
    return _TAG.sub("", text)
