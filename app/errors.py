"""Error kinds raised by the stores and catalog adapters."""

from __future__ import annotations


class AndrateError(Exception):
    """Base class for every failure reported back to callers."""

    status_code: int = 500

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(AndrateError):
    """Malformed caller input such as an out-of-range username."""

    status_code = 400


class AuthError(AndrateError):
    """Unknown user or wrong password, deliberately indistinguishable."""

    status_code = 401


class ConflictError(AndrateError):
    """A unique value (the username) is already taken."""

    status_code = 409


class ConfigError(AndrateError):
    """A required setting is missing."""

    status_code = 503


class StorageError(AndrateError):
    """The database rejected a write."""

    status_code = 500


class CatalogError(AndrateError):
    """An upstream catalog call failed; the message is passed through as-is."""

    status_code = 502


class TransportError(CatalogError):
    """Network failure or non-success status while reaching an upstream."""


class FormatError(CatalogError):
    """The upstream body could not be parsed into the expected shape."""
