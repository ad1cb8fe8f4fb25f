"""Application settings loaded from the environment (and an optional .env file)."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel, frozen=True):
    app_title: str = "Clinic Practice Service"
    log_level: str = "INFO"
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)
    default_country: str = "Chile"


def load_settings() -> Settings:
    """Build Settings from environment variables, falling back to defaults."""
    overrides = {
        "app_title": os.getenv("APP_TITLE"),
        "log_level": os.getenv("LOG_LEVEL"),
        "default_page_size": os.getenv("DEFAULT_PAGE_SIZE"),
        "max_page_size": os.getenv("MAX_PAGE_SIZE"),
        "default_country": os.getenv("DEFAULT_COUNTRY"),
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
