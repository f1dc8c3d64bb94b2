"""Registration and login for local users."""

from __future__ import annotations

import asyncio
import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import User
from ..errors import AuthError, ConflictError, StorageError, ValidationError
from ..models import UserIdentity

logger = logging.getLogger(__name__)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 100

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"
USERNAME_TAKEN_MESSAGE = "Username already exists"


class CredentialStore:
    """Create and verify user accounts.

    Only Argon2 hashes are persisted; plaintext passwords never reach the
    database. Login failures share one message whether the username is
    unknown or the password is wrong.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hasher: PasswordHasher | None = None,
    ):
        self._session_factory = session_factory
        self._hasher = hasher or PasswordHasher()
        # Built once at startup so unknown-user logins cost exactly one verify.
        self._dummy_hash = self._hasher.hash("andrate-placeholder-password")

    async def register(self, username: str, password: str) -> UserIdentity:
        """Create a new account and return its identity."""

        name = self._validate_registration(username, password)
        password_hash = await asyncio.to_thread(self._hasher.hash, password)

        try:
            async with self._session_factory() as session:
                existing = await session.scalar(
                    select(User.id).where(User.username == name)
                )
                if existing is not None:
                    logger.info("Registration rejected, username %s is taken", name)
                    raise ConflictError(USERNAME_TAKEN_MESSAGE)

                user = User(username=name, password_hash=password_hash)
                session.add(user)
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    raise ConflictError(USERNAME_TAKEN_MESSAGE) from exc
        except SQLAlchemyError as exc:
            logger.warning("Registration of %s failed: %s", name, exc)
            raise StorageError(str(getattr(exc, "orig", None) or exc)) from exc

        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return UserIdentity(user_id=user.id, username=user.username)

    async def authenticate(self, username: str, password: str) -> UserIdentity:
        name = (username or "").strip()
        if not name:
            raise ValidationError("Username cannot be empty")
        if not password:
            raise ValidationError("Password cannot be empty")

        try:
            async with self._session_factory() as session:
                user = await session.scalar(select(User).where(User.username == name))
        except SQLAlchemyError as exc:
            logger.warning("Login lookup for %s failed: %s", name, exc)
            raise StorageError(str(getattr(exc, "orig", None) or exc)) from exc

        if user is None:
            # Spend the same hashing effort as a real check.
            await asyncio.to_thread(self._verify, self._dummy_hash, password)
            raise AuthError(INVALID_CREDENTIALS_MESSAGE)
        if not await asyncio.to_thread(self._verify, user.password_hash, password):
            raise AuthError(INVALID_CREDENTIALS_MESSAGE)
        return UserIdentity(user_id=user.id, username=user.username)

    @staticmethod
    def _validate_registration(username: str, password: str) -> str:
        name = (username or "").strip()
        if not name:
            raise ValidationError("Username cannot be empty")
        if len(name) < USERNAME_MIN_LENGTH:
            raise ValidationError(
                f"Username must be at least {USERNAME_MIN_LENGTH} characters long"
            )
        if len(name) > USERNAME_MAX_LENGTH:
            raise ValidationError(
                f"Username must be less than {USERNAME_MAX_LENGTH} characters long"
            )
        password = password or ""
        if len(password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
            )
        if len(password) > PASSWORD_MAX_LENGTH:
            raise ValidationError(
                f"Password must be less than {PASSWORD_MAX_LENGTH} characters long"
            )
        return name

    def _verify(self, password_hash: str, password: str) -> bool:
        try:
            return self._hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False
