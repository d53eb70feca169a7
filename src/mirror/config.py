"""
Mirror configuration.

Controls the webhook payload limits. Settings can be
overridden via ``MIRROR_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MirrorConfig(BaseSettings):
    """Configuration for the message gateway."""

    model_config = SettingsConfigDict(
        env_prefix="MIRROR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    max_message_length: int = Field(
        default=2000,
        ge=10,
        description="Maximum message length accepted by the webhook API",
    )
    truncation_suffix: str = Field(
        default="...",
        max_length=8,
        description="Appended to content cut down to max_message_length",
    )
