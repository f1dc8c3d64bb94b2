"""Client for The Movie Database (TMDB) movie and TV catalog."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PayloadValidationError

from ..config import ApiKeyAuth, BearerAuth, Settings, TMDBAuth
from ..errors import ConfigError, FormatError, TransportError, ValidationError
from ..models import MEDIA_KINDS, DetailItem, SearchItem
from ..normalize import (
    TMDB_RATING_SCALE,
    build_poster_url,
    extract_year,
    genre_names,
    resolve_title,
    scale_rating,
)

logger = logging.getLogger(__name__)

MISSING_CREDENTIALS_MESSAGE = "Set TMDB_BEARER (v4) or TMDB_API_KEY (v3)"


class TMDBResult(BaseModel):
    """A movie or TV record as returned in ``results[]``.

    Movies carry ``title``/``release_date``; TV shows ``name``/``first_air_date``.
    """

    id: int
    title: str | None = None
    name: str | None = None
    poster_path: str | None = None
    overview: str | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    release_date: str | None = None
    first_air_date: str | None = None


class TMDBGenre(BaseModel):
    id: int | None = None
    name: str | None = None


class TMDBDetail(TMDBResult):
    genres: list[TMDBGenre] = Field(default_factory=list)


class TMDBListResponse(BaseModel):
    page: int | None = None
    results: list[TMDBResult] = Field(default_factory=list)


ResponseT = TypeVar("ResponseT", bound=BaseModel)


def result_to_search_item(
    result: TMDBResult, kind: str, image_base_url: str
) -> SearchItem:
    """Map a TMDB list result onto the shared summary schema."""

    return SearchItem(**_summary_fields(result, kind, image_base_url))


def detail_to_detail_item(
    detail: TMDBDetail, kind: str, image_base_url: str
) -> DetailItem:
    date_value = detail.release_date if kind == "movie" else detail.first_air_date
    return DetailItem(
        **_summary_fields(detail, kind, image_base_url),
        year=extract_year(date_value),
        genres=genre_names(genre.name for genre in detail.genres),
    )


def _summary_fields(
    result: TMDBResult, kind: str, image_base_url: str
) -> dict[str, Any]:
    title = result.title if kind == "movie" else result.name
    return {
        "item_id": str(result.id),
        "item_type": kind,
        "title": resolve_title(title),
        "poster_url": build_poster_url(result.poster_path, image_base_url),
        "overview": result.overview,
        "community_rating": scale_rating(result.vote_average, TMDB_RATING_SCALE),
        "community_rating_count": result.vote_count,
    }


class TMDBClient:
    """Client responsible for search, discover and detail lookups on TMDB."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._auth: TMDBAuth | None = settings.tmdb_auth
        self._image_base_url = settings.tmdb_image_base_url
        self._client = http_client

    async def search(self, kind: str, text: str) -> list[SearchItem]:
        kind = self._validate_kind(kind)
        response = await self._get(
            f"/search/{kind}", {"query": text}, TMDBListResponse
        )
        return [
            result_to_search_item(result, kind, self._image_base_url)
            for result in response.results
        ]

    async def discover(self, kind: str, page: int | None = None) -> list[SearchItem]:
        """Return one page of the most popular titles of ``kind``."""

        kind = self._validate_kind(kind)
        params = {"sort_by": "popularity.desc", "page": page or 1}
        response = await self._get(f"/discover/{kind}", params, TMDBListResponse)
        return [
            result_to_search_item(result, kind, self._image_base_url)
            for result in response.results
        ]

    async def detail(self, kind: str, item_id: str | int) -> DetailItem:
        kind = self._validate_kind(kind)
        detail = await self._get(f"/{kind}/{item_id}", {}, TMDBDetail)
        return detail_to_detail_item(detail, kind, self._image_base_url)

    @staticmethod
    def _validate_kind(kind: str) -> str:
        if kind not in MEDIA_KINDS:
            raise ValidationError(f"Unsupported media kind: {kind}")
        return kind

    def _auth_arguments(self) -> tuple[dict[str, str], dict[str, str]]:
        """Return the headers and query parameters carrying the credential."""

        auth = self._auth
        if isinstance(auth, BearerAuth):
            return {"Authorization": f"Bearer {auth.token}"}, {}
        if isinstance(auth, ApiKeyAuth):
            return {}, {"api_key": auth.key}
        raise ConfigError(MISSING_CREDENTIALS_MESSAGE)

    async def _get(
        self,
        endpoint: str,
        params: dict[str, Any],
        response_model: type[ResponseT],
    ) -> ResponseT:
        auth_headers, auth_params = self._auth_arguments()
        headers = {"Accept": "application/json", **auth_headers}
        try:
            response = await self._client.get(
                endpoint, params={**params, **auth_params}, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            # The message may embed the request URL; never log the API key.
            logger.warning("TMDB request to %s failed: %s", endpoint, type(exc).__name__)
            raise TransportError(_redact(str(exc), auth_params)) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("TMDB returned a non-JSON body for %s", endpoint)
            raise FormatError(str(exc)) from exc

        try:
            return response_model.model_validate(payload)
        except PayloadValidationError as exc:
            logger.warning("Unexpected TMDB response structure for %s: %s", endpoint, exc)
            raise FormatError(str(exc)) from exc


def _redact(message: str, auth_params: dict[str, str]) -> str:
    key = auth_params.get("api_key")
    if key:
        return message.replace(key, "***")
    return message
