"""Configuration loading for the reading list service."""

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from readinglist.utils.secrets import get_secret_manager

JWT_SECRET_ID = "jwt-secret"
GEMINI_API_KEY_SECRET_ID = "gemini-api-key"


class ConfigurationError(Exception):
    """Raised when a required setting or credential is missing."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="READINGLIST_", populate_by_name=True)

    # Storage
    database_url: str = Field(
        default="sqlite:///./readinglist.db", description="SQLAlchemy database URL"
    )

    # Auth
    jwt_secret: str | None = Field(default=None, description="HMAC key for signing tokens")
    token_ttl_hours: int = Field(default=24, gt=0, description="Token lifetime in hours")

    # Gemini
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("READINGLIST_GEMINI_API_KEY", "GEMINI_API_KEY"),
        description="API key for the Gemini API",
    )
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model name")

    # Optional Secret Manager fallback for credentials
    gcp_project_id: str | None = Field(default=None, description="Google Cloud project ID")

    # Ingestion
    fetch_timeout: float = Field(default=30.0, gt=0, description="Article fetch timeout in seconds")
    mark_stalled_failed: bool = Field(
        default=False,
        description="Mark articles failed when ingestion stops after a successful fetch",
    )

    # Application settings
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("jwt_secret", "gemini_api_key", "gcp_project_id")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat blank values as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate the database URL is not empty."""
        if not v or not v.strip():
            raise ValueError(
                "READINGLIST_DATABASE_URL must not be empty. "
                "Set it to a SQLAlchemy URL such as sqlite:///./readinglist.db."
            )
        return v.strip()


class SecretsConfig:
    """Credentials taken from settings, falling back to Secret Manager."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._jwt_secret: str | None = settings.jwt_secret
        self._gemini_api_key: str | None = settings.gemini_api_key

    @property
    def jwt_secret(self) -> str:
        """Get the token signing secret."""
        if self._jwt_secret is None:
            self._jwt_secret = self._from_secret_manager(JWT_SECRET_ID, "READINGLIST_JWT_SECRET")
        return self._jwt_secret

    @property
    def gemini_api_key(self) -> str:
        """Get the Gemini API key."""
        if self._gemini_api_key is None:
            self._gemini_api_key = self._from_secret_manager(
                GEMINI_API_KEY_SECRET_ID, "GEMINI_API_KEY"
            )
        return self._gemini_api_key

    def _from_secret_manager(self, secret_id: str, env_name: str) -> str:
        project_id = self._settings.gcp_project_id
        if project_id is None:
            raise ConfigurationError(
                f"{env_name} is required. Set it, or set READINGLIST_GCP_PROJECT_ID "
                f"to read the '{secret_id}' secret from Secret Manager."
            )
        value = get_secret_manager(project_id).get_secret(secret_id)
        if not value:
            raise ConfigurationError(f"Secret '{secret_id}' is empty in project {project_id}")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


def get_secrets(settings: Settings | None = None) -> SecretsConfig:
    """Get a secrets resolver for ``settings`` (the cached settings by default)."""
    if settings is None:
        settings = get_settings()
    return SecretsConfig(settings)
