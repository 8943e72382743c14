"""Tests for settings loading and the startup secret check."""

import pytest

from storedir.main import app, lifespan
from storedir.settings import DEV_SESSION_SECRET, Settings, check_session_secret, get_settings


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("SESSION_SECRET", "SECRET_KEY", "DEBUG"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_default_secret_is_the_placeholder(clean_env) -> None:
    settings = Settings(_env_file=None)
    assert settings.session_secret == DEV_SESSION_SECRET
    assert settings.debug is False


def test_placeholder_secret_refused_without_debug(clean_env) -> None:
    with pytest.raises(RuntimeError, match="SESSION_SECRET"):
        check_session_secret(Settings(_env_file=None))


def test_placeholder_secret_allowed_in_debug(clean_env) -> None:
    clean_env.setenv("DEBUG", "true")
    check_session_secret(Settings(_env_file=None))


@pytest.mark.parametrize("name", ["SESSION_SECRET", "SECRET_KEY"])
def test_configured_secret_passes(clean_env, name: str) -> None:
    clean_env.setenv(name, "a-long-random-production-secret")
    settings = Settings(_env_file=None)
    assert settings.session_secret == "a-long-random-production-secret"
    check_session_secret(settings)


@pytest.mark.asyncio
async def test_startup_fails_with_placeholder_secret(clean_env) -> None:
    clean_env.setenv("DEBUG", "false")
    get_settings.cache_clear()

    with pytest.raises(RuntimeError, match="SESSION_SECRET"):
        async with lifespan(app):
            pass
