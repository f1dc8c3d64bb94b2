"""Tests for library persistence."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select

from app.database import Database
from app.db_models import LibraryEntry, User
from app.errors import StorageError
from app.models import LibraryUpsert
from app.services.library import LibraryStore


async def _open(tmp_path) -> tuple[Database, LibraryStore, int, int]:
    """Create a fresh database with two users and return their ids."""

    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
    await database.create_all()
    async with database.session() as session:
        alice = User(username="alice", password_hash="$argon2id$placeholder")
        bob = User(username="bob", password_hash="$argon2id$placeholder")
        session.add_all([alice, bob])
        await session.commit()
        ids = (alice.id, bob.id)
    return database, LibraryStore(database.session_factory), *ids


def test_upsert_overwrites_existing_entry_in_place(tmp_path) -> None:
    """Re-submitting the same triple keeps one row and its original id."""

    async def runner() -> None:
        database, store, alice, _ = await _open(tmp_path)

        await store.upsert(alice, "603", "movie", "The Matrix", None, "planning", None)
        [first] = await store.query(alice)

        await store.upsert(
            alice,
            "603",
            "movie",
            "The Matrix (1999)",
            "https://image.tmdb.org/t/p/w500/matrix.jpg",
            "completed",
            9.5,
        )
        [second] = await store.query(alice)

        assert second.id == first.id
        assert second.title == "The Matrix (1999)"
        assert second.poster_url == "https://image.tmdb.org/t/p/w500/matrix.jpg"
        assert second.status == "completed"
        assert second.rating == 9.5

        async with database.session() as session:
            count = await session.scalar(
                select(func.count()).select_from(LibraryEntry)
            )
        assert count == 1

        await database.dispose()

    asyncio.run(runner())


def test_upsert_clears_optional_fields(tmp_path) -> None:
    """Absent poster and rating on resubmission replace earlier values."""

    async def runner() -> None:
        database, store, alice, _ = await _open(tmp_path)

        await store.upsert(alice, "1", "anime", "Cowboy Bebop", "https://p/1.jpg", "watching", 8.0)
        await store.upsert(alice, "1", "anime", "Cowboy Bebop", None, "watching", None)

        [entry] = await store.query(alice)
        assert entry.poster_url is None
        assert entry.rating is None

        await database.dispose()

    asyncio.run(runner())


def test_same_item_id_with_different_type_is_a_separate_entry(tmp_path) -> None:
    async def runner() -> None:
        database, store, alice, _ = await _open(tmp_path)

        await store.upsert(alice, "1399", "tv", "Game of Thrones", None, "watching", None)
        await store.upsert(alice, "1399", "movie", "Some Movie", None, "planning", None)

        entries = await store.query(alice)
        assert sorted(entry.item_type for entry in entries) == ["movie", "tv"]

        await database.dispose()

    asyncio.run(runner())


def test_query_filters_by_type_and_status(tmp_path) -> None:
    async def runner() -> None:
        database, store, alice, bob = await _open(tmp_path)

        await store.upsert(alice, "1", "movie", "Heat", None, "watching", None)
        await store.upsert(alice, "2", "movie", "Alien", None, "completed", 9.0)
        await store.upsert(alice, "3", "tv", "Lost", None, "watching", None)
        await store.upsert(alice, "4", "anime", "Mushishi", None, "watching", None)
        await store.upsert(bob, "5", "movie", "Jaws", None, "watching", None)

        both = await store.query(alice, item_type="movie", status="watching")
        assert [entry.title for entry in both] == ["Heat"]

        movies = await store.query(alice, item_type="movie")
        assert [entry.title for entry in movies] == ["Heat", "Alien"]

        watching = await store.query(alice, status="watching")
        assert [entry.title for entry in watching] == ["Heat", "Lost", "Mushishi"]

        everything = await store.query(alice)
        assert [entry.item_id for entry in everything] == ["1", "2", "3", "4"]

        assert [entry.title for entry in await store.query(bob)] == ["Jaws"]

        await database.dispose()

    asyncio.run(runner())


def test_status_and_type_are_not_validated(tmp_path) -> None:
    """The store accepts any status or type string as given."""

    async def runner() -> None:
        database, store, alice, _ = await _open(tmp_path)

        await store.upsert_entry(
            LibraryUpsert(
                user_id=alice,
                item_id="abc",
                item_type="podcast",
                title="Odd One",
                status="on-hold",
            )
        )

        [entry] = await store.query(alice, item_type="podcast", status="on-hold")
        assert entry.title == "Odd One"
        assert entry.rating is None

        await database.dispose()

    asyncio.run(runner())


def test_upsert_for_unknown_user_raises_storage_error(tmp_path) -> None:
    async def runner() -> None:
        database, store, _, _ = await _open(tmp_path)

        with pytest.raises(StorageError):
            await store.upsert(9999, "1", "movie", "Ghost", None, "planning", None)

        await database.dispose()

    asyncio.run(runner())


def test_missing_schema_surfaces_as_storage_error(tmp_path) -> None:
    """Database failures other than constraint violations are still typed."""

    async def runner() -> None:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        store = LibraryStore(database.session_factory)

        with pytest.raises(StorageError, match="no such table"):
            await store.upsert(1, "603", "movie", "The Matrix", None, "planning", None)
        with pytest.raises(StorageError, match="no such table"):
            await store.query(1)

        await database.dispose()

    asyncio.run(runner())
