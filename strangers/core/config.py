"""
Configuration management for the Strangers relay.

Handles environment-based configuration; the only value most deployments set is PORT.
"""
import os
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Debug - handle non-boolean values gracefully
    debug: bool = False

    @field_validator("debug", mode="before")
    @classmethod
    def parse_debug(cls, v):
        """Parse debug from environment, handling non-boolean values."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes")
        # If DEBUG env var is not set, Pydantic will use default
        debug_env = os.getenv("DEBUG", "false").lower()
        return debug_env in ("true", "1", "yes")

    # Listener (PORT wins over API_PORT)
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = Field(default=3000, validation_alias=AliasChoices("port", "api_port"))

    # Heartbeat: ping after this much silence, close if no pong within the timeout
    heartbeat_inactivity_seconds: float = float(os.getenv("HEARTBEAT_INACTIVITY_SECONDS", "3.0"))
    heartbeat_pong_timeout_seconds: float = float(os.getenv("HEARTBEAT_PONG_TIMEOUT_SECONDS", "1.0"))

    # Max inbound text frame size (bytes)
    max_frame_size: int = int(os.getenv("MAX_FRAME_SIZE", str(256 * 1024)))

    # CORS
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")

    @field_validator("heartbeat_inactivity_seconds", "heartbeat_pong_timeout_seconds")
    @classmethod
    def positive_delay(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("heartbeat delays must be positive")
        return v

    class Config:
        # Load .env from project root (strangers/core/config.py -> parent.parent.parent)
        env_file = str(Path(__file__).resolve().parent.parent.parent / ".env")
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields in .env file
        populate_by_name = True


# Global settings instance
settings = Settings()
