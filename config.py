"""
Application configuration.

Loads settings from environment variables and an optional .env file.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the Signals & Feed API.

    Attributes:
        project_name: Display name for the API.
        version: API version string.
        database_url: MongoDB connection string (DATABASE_URL).
        database_name: Database holding the users, signals and feedposts collections.
        jwt_secret: Secret used to sign identity tokens. Loaded once at startup.
        host: Bind address for uvicorn.
        port: Listen port.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        cors_origins: Comma-separated list of allowed origins, or "*".
        bcrypt_rounds: bcrypt work factor used for password hashes.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    project_name: str = "Signals & Feed API"
    version: str = "1.0.0"

    database_url: str = "mongodb://localhost:27017"
    database_name: str = "signals_feed"

    jwt_secret: str = ""

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: str = "*"

    bcrypt_rounds: int = 10

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
