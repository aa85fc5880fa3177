"""Centralized configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

# Upload limit enforced at the HTTP boundary (10MB)
MAX_IMAGE_BYTES = 10 * 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==================== Server ====================
    host: str = "0.0.0.0"
    port: int = 3000

    # ==================== Logging ====================
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # ==================== WhatsApp Session ====================
    # Stored credentials and the session database live here.
    # Remove this directory (or run `zapgate logout`) to pair again.
    auth_dir: str = "./auth"

    # ==================== Uploads ====================
    upload_dir: str = "./uploads"
    max_image_bytes: int = MAX_IMAGE_BYTES

    # ==================== Commands ====================
    enable_ping_command: bool = True

    # Handle empty strings for optional string fields
    @field_validator("log_file", mode="before")
    @classmethod
    def parse_optional_str(cls, v):
        if v == "":
            return None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if not v:
            return "INFO"
        return str(v).upper()

    @field_validator("max_image_bytes")
    @classmethod
    def check_positive(cls, v):
        if v <= 0:
            raise ValueError("max_image_bytes must be positive")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
