"""Pydantic models shared by the stores, adapters and HTTP surface."""

from __future__ import annotations

from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

ItemType = Literal["anime", "tv", "movie"]
MediaKind = Literal["movie", "tv"]

MEDIA_KINDS: tuple[str, ...] = get_args(MediaKind)


class UserIdentity(BaseModel):
    """Identity returned by registration and login."""

    user_id: int
    username: str


class Credentials(BaseModel):
    """Username/password pair submitted to register or log in."""

    username: str = ""
    password: str = ""


class LibraryUpsert(BaseModel):
    """Payload for creating or replacing a library entry.

    ``item_type`` and ``status`` are free-form strings: the store accepts any
    value and leaves constraining them to the caller.
    """

    user_id: int
    item_id: str
    item_type: str
    title: str
    poster_url: str | None = None
    status: str
    rating: float | None = None


class LibraryItem(BaseModel):
    """A stored library entry as returned by queries."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: str
    item_type: str
    title: str
    poster_url: str | None = None
    status: str
    rating: float | None = None


class SearchItem(BaseModel):
    """Normalized media summary used for search and discover results.

    ``community_rating`` is always on a 0-10 scale regardless of the source.
    Absent upstream values stay ``None`` and are never coerced to ``""`` or 0.
    """

    item_id: str
    item_type: ItemType
    title: str
    poster_url: str | None = None
    overview: str | None = None
    community_rating: float | None = None
    community_rating_count: int | None = None


class DetailItem(SearchItem):
    """Normalized single-record view with release year and genres."""

    year: int | None = None
    genres: list[str] = Field(default_factory=list)
