"""Application settings loaded from environment variables.

Hey future me - every knob of the client lives here! Values come from PREMA_* env vars
(or a .env file next to the process). Nested groups use a double underscore, e.g.
PREMA_API__BASE_URL or PREMA_MESSAGING__POLL_INTERVAL.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseModel):
    """Backend REST API settings."""

    base_url: str = Field(
        default="https://prema-dating-app.onrender.com",
        description="Base URL of the Prema backend (no trailing slash)",
    )
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    max_connections: int = Field(default=20, ge=1)
    max_keepalive: int = Field(default=10, ge=0)

    # Hey future me - a trailing slash here turns "/auth/me" into "//auth/me" on some
    # backends. Strip it once at load time instead of in every request.
    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize the base URL."""
        return value.strip().rstrip("/")


class StorageSettings(BaseModel):
    """Local key-value storage settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./prema_client.db",
        description="SQLAlchemy async URL for the local storage database",
    )
    echo: bool = False


class MessagingSettings(BaseModel):
    """Chat polling settings."""

    poll_interval: float = Field(
        default=3.0, gt=0, description="Seconds between message refreshes while a chat is open"
    )


class DiscoverySettings(BaseModel):
    """Browse/discovery pagination settings."""

    page_size: int = Field(default=10, ge=1, le=100)
    prefetch_threshold: int = Field(
        default=3, ge=0, description="Fetch the next page when this many candidates remain"
    )
    filter_debounce_seconds: float = Field(default=0.5, ge=0)


class LocationSettings(BaseModel):
    """Location auto-update settings."""

    update_interval_seconds: int = Field(
        default=600, ge=0, description="Minimum seconds between location pushes"
    )
    settle_delay_seconds: float = Field(
        default=0.3,
        ge=0,
        description="Pause after a location push so distances are fresh on the next browse",
    )


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="PREMA_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "prema"
    log_level: str = "INFO"
    log_json_format: bool = False

    api: ApiSettings = Field(default_factory=ApiSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    messaging: MessagingSettings = Field(default_factory=MessagingSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    location: LocationSettings = Field(default_factory=LocationSettings)

    def get_sqlite_db_path(self) -> Path | None:
        """Return the file path of a SQLite storage URL, None for other databases.

        In-memory databases also return None - there is nothing on disk to validate.
        """
        url = self.storage.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path == ":memory:":
            return None
        return Path(path)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (cached after first load)."""
    return Settings()
