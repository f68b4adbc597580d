"""Configuration management for the video sharing API."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="VS_", extra="ignore")

    # Security
    app_secret_key: str
    token_ttl_seconds: int = 86400 * 7  # 7 days
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Database
    database_url: str = "sqlite+aiosqlite:///./dev.db"

    # Pagination
    page_size_default: int = 20
    page_size_max: int = 100

    # Catalog
    search_query_max_length: int = 100
    video_description_max_length: int = 1000
    recommended_limit: int = 10
    recommended_min_related: int = 5

    # Personal lists
    history_max_entries: int = 100

    # Defaults for new records
    default_profile_picture: str = "https://via.placeholder.com/150"
    default_thumbnail_url: str = "https://via.placeholder.com/320x180"

    # Uploads
    uploads_enabled: bool = True

    # CORS
    frontend_origin: str = "http://localhost:3000"

    # Environment
    env: str = Field(default="dev", pattern="^(dev|prod)$")
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
