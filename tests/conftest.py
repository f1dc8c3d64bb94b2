"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_tmdb_credentials(monkeypatch) -> None:
    """Keep developer TMDB credentials out of settings built by tests."""

    monkeypatch.delenv("TMDB_BEARER", raising=False)
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
