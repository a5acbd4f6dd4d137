"""
Tests for settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from workitems.config import Settings


class TestJwtSecret:

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(JWT_SECRET_KEY="too-short")

    def test_empty_secret_rejected(self):
        with pytest.raises(ValidationError):
            Settings(JWT_SECRET_KEY="")


class TestDatabaseUrl:

    @pytest.mark.parametrize("raw,expected", [
        ("postgres://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgresql://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("sqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
        ("sqlite+aiosqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
    ])
    def test_normalized_to_async_driver(self, raw, expected):
        assert Settings(DB_URL=raw).DB_URL == expected

    @pytest.mark.parametrize("raw", ["mysql://u:p@db/app", "not a url", ""])
    def test_unsupported_url_rejected(self, raw):
        with pytest.raises(ValidationError):
            Settings(DB_URL=raw)

    def test_backend_detection(self):
        assert Settings(DB_URL="sqlite:///./x.db").is_sqlite
        assert not Settings(DB_URL="postgres://u:p@db/app").is_sqlite


class TestSettingsBehaviour:

    def test_settings_are_immutable(self, settings):
        with pytest.raises(ValidationError):
            settings.MAX_PAGE_SIZE = 1000

    def test_defaults(self, settings):
        assert settings.DEFAULT_PAGE == 1
        assert settings.DEFAULT_PAGE_SIZE == 10
        assert settings.MAX_PAGE_SIZE == 100
        assert settings.JWT_EXPIRATION_HOURS == 24

    def test_cors_origins_parsed(self):
        settings = Settings(CORS_ORIGINS="http://a.example, http://b.example,,")

        assert settings.get_cors_origins() == ["http://a.example", "http://b.example"]

    @pytest.mark.parametrize("env,expected", [("production", True), ("Production", True), ("dev", False)])
    def test_is_production(self, env, expected):
        assert Settings(APP_ENV=env).is_production is expected
