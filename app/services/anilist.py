"""Client for the AniList GraphQL catalog."""

from __future__ import annotations

import logging
import re
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PayloadValidationError

from ..config import Settings
from ..errors import FormatError, TransportError
from ..models import DetailItem, SearchItem
from ..normalize import ANILIST_RATING_SCALE, genre_names, resolve_title, scale_rating

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 12
DISCOVER_PAGE_SIZE = 24

_MEDIA_FIELDS = (
    "id title { romaji english native } coverImage { large } "
    "description(asHtml: false) averageScore"
)

SEARCH_QUERY = (
    "query ($query: String) { Page(perPage: %d) { "
    "media(search: $query, type: ANIME) { %s } } }" % (SEARCH_PAGE_SIZE, _MEDIA_FIELDS)
)
DISCOVER_QUERY = (
    "query ($page: Int) { Page(page: $page, perPage: %d) { "
    "media(type: ANIME, sort: TRENDING_DESC) { %s } } }"
    % (DISCOVER_PAGE_SIZE, _MEDIA_FIELDS)
)
DETAIL_QUERY = (
    "query ($id: Int) { Media(id: $id, type: ANIME) { "
    "%s seasonYear genres } }" % _MEDIA_FIELDS
)


class AniListTitle(BaseModel):
    english: str | None = None
    romaji: str | None = None
    native: str | None = None


class AniListCoverImage(BaseModel):
    large: str | None = None


class AniListMedia(BaseModel):
    """A ``Media`` node; only ``id`` is guaranteed by the API."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: AniListTitle = Field(default_factory=AniListTitle)
    cover_image: AniListCoverImage | None = Field(default=None, alias="coverImage")
    description: str | None = None
    average_score: float | None = Field(default=None, alias="averageScore")
    season_year: int | None = Field(default=None, alias="seasonYear")
    genres: list[str | None] | None = None


class AniListPage(BaseModel):
    media: list[AniListMedia] = Field(default_factory=list)


class AniListPageData(BaseModel):
    page: AniListPage = Field(alias="Page")


class AniListPageResponse(BaseModel):
    data: AniListPageData


class AniListMediaData(BaseModel):
    media: AniListMedia | None = Field(default=None, alias="Media")


class AniListMediaResponse(BaseModel):
    data: AniListMediaData


ResponseT = TypeVar("ResponseT", bound=BaseModel)


def media_to_search_item(media: AniListMedia) -> SearchItem:
    """Map an AniList media node onto the shared summary schema."""

    return SearchItem(**_summary_fields(media))


def media_to_detail_item(media: AniListMedia) -> DetailItem:
    return DetailItem(
        **_summary_fields(media),
        year=media.season_year,
        genres=genre_names(media.genres),
    )


def _summary_fields(media: AniListMedia) -> dict[str, Any]:
    title = media.title
    return {
        "item_id": str(media.id),
        "item_type": "anime",
        "title": resolve_title(title.english, title.romaji, title.native),
        "poster_url": media.cover_image.large if media.cover_image else None,
        "overview": media.description,
        "community_rating": scale_rating(media.average_score, ANILIST_RATING_SCALE),
        # AniList does not expose a vote count.
        "community_rating_count": None,
    }


MEDIA_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
MEDIA_ID_MIN = -(2**31)
MEDIA_ID_MAX = 2**31 - 1


def coerce_media_id(value: str | int) -> int:
    """Return the AniList id as a signed 32-bit integer.

    Anything that is not a plain decimal (optionally signed, no whitespace)
    or that falls outside the 32-bit range becomes 0.
    """

    if isinstance(value, int):
        number = value
    elif MEDIA_ID_PATTERN.fullmatch(value):
        number = int(value)
    else:
        return 0
    if not MEDIA_ID_MIN <= number <= MEDIA_ID_MAX:
        return 0
    return number


class AniListClient:
    """Thin wrapper around the AniList GraphQL endpoint."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._endpoint = str(settings.anilist_api_url)
        self._client = http_client

    async def search(self, text: str) -> list[SearchItem]:
        """Return up to twelve anime matching ``text``."""

        response = await self._query(
            SEARCH_QUERY, {"query": text}, AniListPageResponse
        )
        return [media_to_search_item(media) for media in response.data.page.media]

    async def discover(self, page: int | None = None) -> list[SearchItem]:
        """Return one page of currently trending anime."""

        response = await self._query(
            DISCOVER_QUERY, {"page": page or 1}, AniListPageResponse
        )
        return [media_to_search_item(media) for media in response.data.page.media]

    async def detail(self, media_id: str | int) -> DetailItem:
        response = await self._query(
            DETAIL_QUERY, {"id": coerce_media_id(media_id)}, AniListMediaResponse
        )
        media = response.data.media
        if media is None:
            raise FormatError("AniList response did not include a Media record")
        return media_to_detail_item(media)

    async def _query(
        self,
        query: str,
        variables: dict[str, Any],
        response_model: type[ResponseT],
    ) -> ResponseT:
        body = {"query": query, "variables": variables}
        try:
            response = await self._client.post(
                self._endpoint,
                json=body,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("AniList request failed: %s", exc)
            raise TransportError(str(exc)) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("AniList returned a non-JSON body: %s", exc)
            raise FormatError(str(exc)) from exc

        if isinstance(payload, dict) and payload.get("errors") and not payload.get("data"):
            message = _first_error_message(payload["errors"])
            logger.warning("AniList reported an error: %s", message)
            raise FormatError(message)

        try:
            return response_model.model_validate(payload)
        except PayloadValidationError as exc:
            logger.warning("Unexpected AniList response structure: %s", exc)
            raise FormatError(str(exc)) from exc


def _first_error_message(errors: Any) -> str:
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict) and first.get("message"):
            return str(first["message"])
    return "AniList reported an error"
