"""Centralized application configuration via Pydantic Settings.

Loads all env vars into a typed Settings instance shared by the API, the
Celery worker and the import CLI.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings

from packages.statement_ingestion.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase
    SUPABASE_URL: str = Field(
        ...,
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
        description="Supabase project URL",
    )
    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        validation_alias=AliasChoices("SUPABASE_SERVICE_KEY", "SUPABASE_SERVICE_ROLE_KEY"),
        description="Supabase service-role key (imports bypass RLS)",
    )
    SUPABASE_ANON_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
        description="Supabase anon/public key for user-scoped clients",
    )

    # Statement import
    STORAGE_BUCKET: str = Field(default="mb-cockpit", description="Storage bucket with uploads")
    DOCUMENTS_TABLE: str = Field(default="documents")
    TRANSACTIONS_TABLE: str = Field(default="finance_transactions")
    UPSERT_BATCH_SIZE: int = Field(default=200, ge=1, description="Rows per upsert request")
    HOME_CURRENCY: str = Field(
        default="PLN",
        min_length=3,
        max_length=3,
        description="Currency used when a statement names none",
    )
    DIALECT_SAMPLE_LINES: int = Field(default=60, ge=1)
    FETCH_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    MAX_UPLOAD_BYTES: int = Field(default=10 * 1024 * 1024, description="Preview upload limit")

    # CORS
    ALLOWED_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Comma-separated allowed origins for CORS",
    )

    # Redis
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Python log level")
    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production",
    )

    # App
    APP_VERSION: str = Field(default="0.1.0", description="Application version")

    @property
    def allowed_origins(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def log_level(self) -> str:
        return self.LOG_LEVEL

    @property
    def home_currency(self) -> str:
        return self.HOME_CURRENCY.upper()

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process.

    Raises:
        ConfigurationError: the Supabase URL or service key is missing.
    """
    try:
        return Settings()
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationError(
            "Supabase URL or service key is not configured",
            extra={"invalid": missing},
        ) from e


# Module-level singleton (lazy: only created when first accessed)
try:
    settings = get_settings()
except ConfigurationError:
    # During testing, env vars may not be set; tests build their own
    settings = None  # type: ignore[assignment]
