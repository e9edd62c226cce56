from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Record store
    data_path: str = "data/db.json"
    low_stock_threshold: int = 50

    # Token signing
    jwt_secret_key: str = "change-me-in-production"
    jwt_issuer: str = "clinica-backend"
    token_ttl_seconds: int = 86400  # 24 hours

    # Session cache
    session_idle_seconds: int = 86400

    # Bootstrap administrator (rotate the password after first login)
    admin_username: str = "admin"
    admin_password: str = "admin123"

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
