"""Persistence for each user's tracked media items."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import LibraryEntry
from ..errors import StorageError
from ..models import LibraryItem, LibraryUpsert

logger = logging.getLogger(__name__)


class LibraryStore:
    """Upsert and query library entries keyed by (user, item id, item type).

    ``item_type`` and ``status`` are stored as given; validating them is the
    caller's job.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def upsert(
        self,
        user_id: int,
        item_id: str,
        item_type: str,
        title: str,
        poster_url: str | None,
        status: str,
        rating: float | None,
    ) -> None:
        """Insert an entry, or overwrite the mutable fields of an existing one.

        The row for an existing (user_id, item_id, item_type) triple keeps its
        primary key.
        """

        stmt = insert(LibraryEntry).values(
            user_id=user_id,
            item_id=item_id,
            item_type=item_type,
            title=title,
            poster_url=poster_url,
            status=status,
            rating=rating,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "item_id", "item_type"],
            set_={
                "title": stmt.excluded.title,
                "poster_url": stmt.excluded.poster_url,
                "status": stmt.excluded.status,
                "rating": stmt.excluded.rating,
            },
        )

        async with self._session_factory() as session:
            try:
                await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                reason = getattr(exc, "orig", None) or exc
                logger.warning(
                    "Library upsert for user %s (%s %s) failed: %s",
                    user_id,
                    item_type,
                    item_id,
                    reason,
                )
                raise StorageError(str(reason)) from exc

    async def upsert_entry(self, entry: LibraryUpsert) -> None:
        await self.upsert(**entry.model_dump())

    async def query(
        self,
        user_id: int,
        item_type: str | None = None,
        status: str | None = None,
    ) -> list[LibraryItem]:
        """Return the user's entries, optionally filtered by type and status."""

        stmt = select(LibraryEntry).where(LibraryEntry.user_id == user_id)
        if item_type is not None:
            stmt = stmt.where(LibraryEntry.item_type == item_type)
        if status is not None:
            stmt = stmt.where(LibraryEntry.status == status)
        stmt = stmt.order_by(LibraryEntry.id)

        try:
            async with self._session_factory() as session:
                result = await session.scalars(stmt)
                return [LibraryItem.model_validate(entry) for entry in result]
        except SQLAlchemyError as exc:
            reason = getattr(exc, "orig", None) or exc
            logger.warning("Library query for user %s failed: %s", user_id, reason)
            raise StorageError(str(reason)) from exc
