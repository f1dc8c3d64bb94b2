"""Shared rules for mapping upstream catalog fields onto the common schema."""

from __future__ import annotations

from typing import Iterable

ANILIST_RATING_SCALE = 100
TMDB_RATING_SCALE = 10
NORMALIZED_RATING_SCALE = 10


def resolve_title(*candidates: str | None) -> str:
    """Return the first non-empty candidate, or an empty string."""

    for candidate in candidates:
        if candidate:
            return candidate
    return ""


def scale_rating(score: float | int | None, native_max: int) -> float | None:
    """Convert a score from its source scale onto 0-10.

    Each adapter declares its source's ``native_max``; conversion happens
    once, at the adapter boundary.
    """

    if score is None:
        return None
    if native_max == NORMALIZED_RATING_SCALE:
        return float(score)
    return score * NORMALIZED_RATING_SCALE / native_max


def build_poster_url(path: str | None, base_url: str) -> str | None:
    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def extract_year(date_value: str | None) -> int | None:
    """Return the year encoded in the first four characters of a date."""

    if not isinstance(date_value, str):
        return None
    head = date_value[:4]
    if len(head) < 4 or not (head.isascii() and head.isdigit()):
        return None
    return int(head)


def genre_names(genres: Iterable[str | None] | None) -> list[str]:
    """Return an ordered list of genre names; never ``None``."""

    if not genres:
        return []
    return [genre for genre in genres if genre]
