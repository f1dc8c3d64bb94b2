"""Application configuration models."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal, Union

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True, slots=True)
class BearerAuth:
    """TMDB v4 read access token sent as an ``Authorization`` header."""

    token: str


@dataclass(frozen=True, slots=True)
class ApiKeyAuth:
    """TMDB v3 API key sent as the ``api_key`` query parameter."""

    key: str


TMDBAuth = Union[BearerAuth, ApiKeyAuth]


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Andrate", alias="APP_NAME")
    server_host: str = Field(default="127.0.0.1", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./andrate.sqlite3", alias="DATABASE_URL"
    )

    anilist_api_url: HttpUrl = Field(
        default="https://graphql.anilist.co", alias="ANILIST_API_URL"
    )
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_image_base_url: str = Field(
        default="https://image.tmdb.org/t/p/w500", alias="TMDB_IMAGE_BASE_URL"
    )
    tmdb_bearer: str | None = Field(default=None, alias="TMDB_BEARER")
    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")

    http_timeout_seconds: float = Field(default=20.0, alias="HTTP_TIMEOUT", gt=0)

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_bearer", "tmdb_api_key", mode="before")
    @classmethod
    def _blank_credentials_are_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper() or "INFO"
        return value

    @property
    def tmdb_auth(self) -> TMDBAuth | None:
        """Return the TMDB credential to use, bearer token first."""

        if self.tmdb_bearer:
            return BearerAuth(self.tmdb_bearer)
        if self.tmdb_api_key:
            return ApiKeyAuth(self.tmdb_api_key)
        return None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
