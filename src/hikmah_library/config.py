"""Configuration management for the Al Hikmah Library server.

Settings are read from the environment (``HIKMAH_LIBRARY_`` prefix) and an
optional ``.env`` file:
1. Server metadata and transport
2. Storage location
3. Loan policy used by the borrowing lifecycle
4. AI assistant provider settings
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MEMORY_DATABASE_URL = "memory://"


class LibrarySettings(BaseSettings):
    """Server configuration.

    Every field can be overridden with ``HIKMAH_LIBRARY_<FIELD_NAME>``.
    """

    model_config = SettingsConfigDict(
        env_prefix="HIKMAH_LIBRARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="hikmah-library",
        description="Server name announced during the MCP handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version announced during the MCP handshake",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Storage ===

    database_path: Path = Field(
        default=Path("data/library.db"),
        description="SQLite database file path (used when database_url is unset)",
    )

    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL, or 'memory://' for the in-process store",
    )

    seed_on_startup: bool = Field(
        default=True,
        description="Load the starter catalog and staff accounts into an empty store",
    )

    # === Transport ===

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^(stdio|streamable_http)$",
    )

    http_host: str = Field(default="127.0.0.1", description="Host for Streamable HTTP")

    http_port: int = Field(
        default=8080,
        description="Port for Streamable HTTP",
        ge=1024,
        le=65535,
    )

    # === Loan Policy ===

    loan_period_days: int = Field(
        default=14,
        description="Default loan length when a borrower gives no due date",
        ge=1,
        le=365,
    )

    renewal_period_days: int = Field(
        default=14,
        description="Days added to the due date by one renewal",
        ge=1,
        le=365,
    )

    renewal_grace_days: int = Field(
        default=0,
        description="How many days past due a loan may still be renewed (0 = never once overdue)",
        ge=0,
    )

    max_renewals: int = Field(
        default=3,
        description="Maximum number of renewals per borrowing",
        ge=0,
        le=10,
    )

    # === AI Assistant ===

    ai_provider: str = Field(
        default="openai",
        description="Completion backend for the assistant",
        pattern=r"^(openai|sampling)$",
    )

    openai_api_key: str | None = Field(
        default=None,
        description="API key for the OpenAI completion backend",
        repr=False,
    )

    ai_model: str = Field(default="gpt-4o", description="Completion model name")

    ai_temperature: float = Field(default=0.5, ge=0.0, le=2.0)

    ai_max_tokens: int = Field(default=1000, ge=1, le=16000)

    ai_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for one completion request",
        gt=0,
    )

    # === Development ===

    debug: bool = Field(default=False, description="Enable debug logging")

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        """Server names must stay short enough to be readable in client UIs."""
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    # === Computed Properties ===

    @property
    def is_development(self) -> bool:
        return self.debug or self.log_level == "DEBUG"

    @property
    def uses_memory_store(self) -> bool:
        return self.database_url == MEMORY_DATABASE_URL

    @property
    def server_info(self) -> dict[str, str]:
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path.absolute()}"


class _SettingsStore:
    """Internal storage for the settings singleton."""

    _instance: LibrarySettings | None = None


def get_settings() -> LibrarySettings:
    """Get or create the global settings instance."""
    if _SettingsStore._instance is None:  # type: ignore[reportPrivateUsage]
        _SettingsStore._instance = LibrarySettings()  # type: ignore[reportPrivateUsage]
    return _SettingsStore._instance  # type: ignore[reportPrivateUsage]


def reset_settings() -> None:
    """Drop the cached settings (used by tests)."""
    _SettingsStore._instance = None  # type: ignore[reportPrivateUsage]
