"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the planner API happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Used for the environment-conditional JWT_SECRET policy:
      development warns about the placeholder key, production refuses it.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("planner.config")

# Placeholder secret shipped for local development only. The validator below
# refuses to start a production process that still uses it.
INSECURE_DEFAULT_SECRET = "your-super-secret-key-change-this-in-production"

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'planner_auth.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    environment: Literal["development", "production", "test"] = "development"
    port: int = 3000
    client_url: str = "http://localhost:5173"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    jwt_secret: str = INSECURE_DEFAULT_SECRET
    token_expire_seconds: int = Field(default=7 * 24 * 60 * 60, gt=0)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    auth_rate_limit: str = "10/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Enforce the JWT_SECRET policy.

        Production: the placeholder secret is a hard startup failure, and so
            is any key shorter than 32 characters.

        Development / test: the placeholder is accepted with a warning so the
            server runs out of the box.
        """
        if self.jwt_secret == INSECURE_DEFAULT_SECRET:
            if self.is_production:
                raise ValueError(
                    "JWT_SECRET must be set in production. "
                    "Set JWT_SECRET in your environment or .env file."
                )
            logger.warning("WARNING: Using the default JWT_SECRET. Do not run this configuration in production.")
        elif self.is_production and len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters in production.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
