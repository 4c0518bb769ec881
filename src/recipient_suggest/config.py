"""Configuration management for Recipient Suggest.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the RECIPIENT_SUGGEST_ prefix (e.g., RECIPIENT_SUGGEST_CONTACTS_DB_PATH).
    """

    model_config = SettingsConfigDict(
        env_prefix="RECIPIENT_SUGGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Gmail Configuration
    gmail_credentials_path: Path = Field(
        default=Path("credentials.json"),
        description="Path to Gmail API credentials file",
    )
    gmail_token_path: Path = Field(
        default=Path("token.json"),
        description="Path to Gmail API token file",
    )
    gmail_user_id: str = Field(
        default="me",
        description="Gmail user id used for API calls",
    )
    gmail_scope: str = Field(
        default="https://www.googleapis.com/auth/gmail.readonly",
        description=(
            "OAuth scope used for Gmail access. Contact indexing only reads thread "
            "metadata and send-as aliases, so gmail.readonly is sufficient."
        ),
    )

    # Contact store
    contacts_db_path: Path = Field(
        default=Path("contacts.sqlite3"),
        description="Path to the SQLite database holding per-account contact sets",
    )
    account_id: str = Field(
        default="default",
        description="Account/connection identifier that owns the contact set",
    )

    # Indexer
    index_folders: list[str] = Field(
        default_factory=lambda: ["inbox", "sent", "draft", "trash"],
        description="Folders scanned, in order, by a full index run",
    )
    index_page_size: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Threads requested per listing page during indexing",
    )
    index_checkpoint_interval: int = Field(
        default=500,
        ge=1,
        description="Processed threads between checkpoint merges",
    )
    index_max_pages: int = Field(
        default=50,
        ge=1,
        description="Pages per folder after which the next page ends the folder",
    )
    fetch_concurrency: int = Field(
        default=10,
        ge=1,
        description="Maximum concurrent thread detail fetches",
    )

    # Suggestions
    suggestion_limit: int = Field(
        default=10,
        ge=1,
        description="Default number of suggestions returned",
    )
    fallback_list_size: int = Field(
        default=50,
        ge=1,
        description="Threads listed per folder by the live fallback scan",
    )
    fallback_thread_count: int = Field(
        default=25,
        ge=1,
        description="Most recent threads per folder inspected by the live fallback scan",
    )
    debounce_seconds: float = Field(
        default=0.3,
        ge=0,
        description="Quiet period after the last keystroke before querying",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Maximum number of retries for failed provider calls",
    )

    @field_validator("index_folders")
    @classmethod
    def _normalize_folders(cls, value: list[str]) -> list[str]:
        folders = [f.strip().lower() for f in value if f.strip()]
        if not folders:
            raise ValueError("index_folders must name at least one folder")
        return folders


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
