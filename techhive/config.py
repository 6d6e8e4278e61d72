"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Runtime
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 3000

    # Authentication
    jwt_secret: str = "your-super-secret-jwt-key-2025"
    jwt_issuer: str = "techhive-api"
    jwt_expire_hours: int = 24
    api_key: str = "techhive-2025"
    bcrypt_rounds: int = 12  # Work factor for credential registry hashes

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    request_log_enabled: bool = True

    # HTTP
    cors_origins: str = "http://localhost:3000,http://localhost:3001"

    # Store
    seed_demo_data: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
