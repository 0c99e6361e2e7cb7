"""AniDB Metadata Provider Configuration Settings."""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TitleLanguageOption(str, Enum):
    """How the display title of a series or episode is chosen."""

    USE_LIBRARY_SETTING = "use_library_setting"
    ROMAJI = "romaji"


class Settings(BaseSettings):
    """AniDB provider settings with validation and type safety."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ============================================================================
    # ANIDB CLIENT IDENTIFICATION
    # ============================================================================

    anidb_client_name: str = Field(
        default="mediabrowser", description="Client name registered with AniDB"
    )
    anidb_client_version: str = Field(
        default="1", description="Client version registered with AniDB"
    )
    anidb_protocol_version: str = Field(
        default="1", description="AniDB HTTP API protocol version"
    )

    # ============================================================================
    # ANIDB ENDPOINTS
    # ============================================================================

    anidb_api_url: str = Field(
        default="http://api.anidb.net:9001/httpapi",
        description="AniDB HTTP API endpoint",
    )
    anidb_titles_url: str = Field(
        default="http://anidb.net/api/animetitles.xml",
        description="Bulk title index (all anime ids with their title variants)",
    )
    anidb_image_base_url: str = Field(
        default="http://img7.anidb.net/pics/anime/",
        description="Prefix joined with <picture> file names",
    )

    # ============================================================================
    # REQUEST PACING
    # ============================================================================

    # AniDB bans clients that go below ~2s between requests or ~4s on average
    anidb_min_request_interval: float = Field(
        default=3.0, gt=0, description="Minimum seconds between two requests"
    )
    anidb_average_request_interval: float = Field(
        default=5.0, gt=0, description="Average seconds between requests"
    )
    anidb_cooldown_window: float = Field(
        default=300.0,
        gt=0,
        description="Rolling window (seconds) over which the average is enforced",
    )
    anidb_wait_time_ms: int = Field(
        default=0,
        ge=0,
        description="Extra delay in milliseconds added after each limiter slot",
    )
    anidb_request_timeout: int = Field(
        default=60, ge=1, le=600, description="Total HTTP request timeout in seconds"
    )

    # ============================================================================
    # METADATA BEHAVIOUR
    # ============================================================================

    tidy_genre_list: bool = Field(
        default=True,
        description="Map AniDB tags onto a fixed genre vocabulary instead of weighted raw tags",
    )
    preferred_title_language: TitleLanguageOption = Field(
        default=TitleLanguageOption.USE_LIBRARY_SETTING,
        description="Title selection policy (library languages or romaji)",
    )

    # ============================================================================
    # LOGGING
    # ============================================================================

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @property
    def prefer_romaji(self) -> bool:
        """Whether romaji main titles win over library languages."""
        return self.preferred_title_language == TitleLanguageOption.ROMAJI

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
