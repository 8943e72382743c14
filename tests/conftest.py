"""Shared fixtures: a fresh SQLite database per test and data builders."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from storedir.models import Store, User
from storedir.services.accounts import register_user
from storedir.services.catalog import create_store
from storedir.settings import get_settings
from storedir.stores import postgres


@pytest.fixture(autouse=True)
def settings_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Isolate settings from any local .env and point uploads at tmp_path."""
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("PUBLIC_BASE_URL", "http://test")
    monkeypatch.setenv("MAIL_API_URL", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def db(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Initialize the session factory against an empty SQLite file."""
    await postgres.init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await postgres.create_tables()
    yield
    await postgres.close_db()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make_user(email: str | None = None, password: str = "correct-horse") -> User:
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        return await register_user(email, f"User {counter['n']}", password)

    return _make_user


@pytest.fixture
def make_store(db):
    async def _make_store(
        author: User,
        name: str,
        *,
        lng: float = -79.3832,
        lat: float = 43.6532,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> Store:
        return await create_store(
            author_id=author.id,
            name=name,
            description=description,
            tags=tags or [],
            longitude=lng,
            latitude=lat,
            address="1 Yonge St, Toronto",
        )

    return _make_store
