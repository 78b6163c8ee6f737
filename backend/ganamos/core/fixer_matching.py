"""Fixer Matching — resolve a spoken name to a group member.

Invariants:
    - Match precedence: exact username, exact name, first name, substring, fuzzy
    - Fuzzy matches accept an edit distance of at most MAX_EDIT_DISTANCE
    - Comparison is case-insensitive and ignores surrounding whitespace

Design Decisions:
    - Voice transcription mangles names ("jon" for "John"), hence the fuzzy tier
    - Members are plain mappings so the same function serves ORM rows and tests
"""

from collections.abc import Sequence
from typing import Protocol

MAX_EDIT_DISTANCE = 2


class MemberLike(Protocol):
    name: str | None
    username: str | None


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def find_fixer(members: Sequence[MemberLike], spoken_name: str):
    """Return the best matching member, or None."""
    needle = spoken_name.lower().strip()
    if not needle:
        return None

    def name_of(m) -> str:
        return (m.name or "").lower()

    def username_of(m) -> str:
        return (m.username or "").lower()

    for predicate in (
        lambda m: username_of(m) == needle,
        lambda m: name_of(m) == needle,
        lambda m: (name_of(m).split(" ")[0] if name_of(m) else "") == needle,
        lambda m: needle in name_of(m) or needle in username_of(m),
    ):
        for member in members:
            if predicate(member):
                return member

    best, best_distance = None, MAX_EDIT_DISTANCE + 1
    for member in members:
        distance = min(
            levenshtein(needle, name_of(member)),
            levenshtein(needle, username_of(member)),
        )
        if distance < best_distance:
            best, best_distance = member, distance
    return best
