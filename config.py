# config.py

import os
import logging
from functools import lru_cache
from typing import Annotated, Any, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.alphavantage.co/query"
DEFAULT_PORT = 3001
DEFAULT_STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")


class Settings(BaseSettings):
    """Application settings from environment variables and .env."""

    alpha_vantage_api_key: Optional[str] = None
    alpha_vantage_base_url: str = DEFAULT_BASE_URL

    # Server
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    # CORS_ORIGINS is a comma-separated list
    cors_origins: Annotated[List[str], NoDecode] = ["*"]
    static_dir: str = DEFAULT_STATIC_DIR

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("alpha_vantage_api_key", mode="before")
    @classmethod
    def blank_key_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("port", mode="before")
    @classmethod
    def fallback_port(cls, value: Any) -> Any:
        if value is None or value == "":
            return DEFAULT_PORT
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Invalid PORT value %r, falling back to %d", value, DEFAULT_PORT)
            return DEFAULT_PORT

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
