"""Tests for core config module."""

import pytest

from apps.api.core.config import Settings, get_settings
from packages.statement_ingestion.errors import ConfigurationError


@pytest.fixture
def supabase_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")


class TestSettings:
    """Test Pydantic Settings loads env vars correctly."""

    def test_settings_loads_supabase_credentials(self, supabase_env):
        settings = Settings()
        assert settings.SUPABASE_URL == "https://test.supabase.co"
        assert settings.SUPABASE_SERVICE_KEY == "service-key"

    def test_settings_accepts_frontend_aliases(self, monkeypatch):
        """The Next.js app names these NEXT_PUBLIC_SUPABASE_URL / SERVICE_ROLE_KEY."""
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)
        monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://alias.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "role-key")

        settings = Settings()
        assert settings.SUPABASE_URL == "https://alias.supabase.co"
        assert settings.SUPABASE_SERVICE_KEY == "role-key"

    def test_settings_loads_allowed_origins(self, supabase_env, monkeypatch):
        """Settings should parse ALLOWED_ORIGINS as comma-separated list."""
        monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000, https://cockpit.example.com")

        settings = Settings()
        assert settings.allowed_origins == [
            "http://localhost:3000",
            "https://cockpit.example.com",
        ]

    def test_settings_defaults(self, supabase_env):
        """Import defaults match the production bucket and tables."""
        settings = Settings()
        assert settings.STORAGE_BUCKET == "mb-cockpit"
        assert settings.DOCUMENTS_TABLE == "documents"
        assert settings.TRANSACTIONS_TABLE == "finance_transactions"
        assert settings.UPSERT_BATCH_SIZE == 200
        assert settings.home_currency == "PLN"
        assert settings.DIALECT_SAMPLE_LINES == 60
        assert settings.MAX_UPLOAD_BYTES == 10 * 1024 * 1024
        assert settings.LOG_LEVEL == "INFO"
        assert settings.ENVIRONMENT == "development"

    def test_settings_rejects_bad_batch_size(self, supabase_env, monkeypatch):
        monkeypatch.setenv("UPSERT_BATCH_SIZE", "0")

        with pytest.raises(Exception):
            Settings()


class TestGetSettings:
    def test_missing_credentials_is_configuration_error(self, monkeypatch):
        for name in (
            "SUPABASE_URL",
            "NEXT_PUBLIC_SUPABASE_URL",
            "SUPABASE_SERVICE_KEY",
            "SUPABASE_SERVICE_ROLE_KEY",
        ):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir("/")
        get_settings.cache_clear()

        try:
            with pytest.raises(ConfigurationError) as exc_info:
                get_settings()
        finally:
            get_settings.cache_clear()

        assert exc_info.value.step == "env"
        assert exc_info.value.to_dict()["ok"] is False
