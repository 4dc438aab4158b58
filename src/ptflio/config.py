"""ptflio settings, read from the environment and an optional `.env` file.

Nothing here is required at startup: a missing Redis URL degrades the cache
to its in-memory tier, and missing integration credentials are reported by
the service clients as CONFIGURATION errors the first time they are used.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment stage; production forces JSON logs."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"


class YouTubeOrder(str, Enum):
    """Sort orders accepted by the YouTube search endpoint."""

    DATE = "date"
    RELEVANCE = "relevance"
    RATING = "rating"
    TITLE = "title"
    VIDEO_COUNT = "videoCount"
    VIEW_COUNT = "viewCount"


class SafeSearch(str, Enum):
    """YouTube safe search levels."""

    MODERATE = "moderate"
    NONE = "none"
    STRICT = "strict"


class Settings(BaseSettings):
    """Runtime configuration.

    Field names map to upper-case environment variables (`REDIS_URL`,
    `YOUTUBE_API_KEY`, ...). Credentials are `SecretStr` so they never show up
    in reprs or logs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Application
    # ========================================
    app_env: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="development, staging or production",
    )
    debug: bool = Field(
        default=False,
        description="Verbose error output",
    )
    app_name: str = Field(
        default="ptflio",
        description="Service name reported by the index route and logs",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Version reported by the index route and OpenAPI",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Root log level",
    )
    log_format: LogFormat = Field(
        default=LogFormat.CONSOLE,
        description="console (colored key/values) or json; production always uses json",
    )

    # ========================================
    # Server
    # ========================================
    host: str = Field(
        default="0.0.0.0",
        description="Interface uvicorn binds to",
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port uvicorn listens on",
    )
    http_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Connection-level timeout for outbound HTTP calls in seconds",
    )

    # ========================================
    # Cache
    # ========================================
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL (primary tier); unset means memory only",
    )
    cache_enabled: bool = Field(
        default=True,
        description="Read and write API responses through the cache",
    )
    cache_default_ttl: int = Field(
        default=300,
        ge=1,
        description="Default cache entry TTL in seconds",
    )
    cache_max_memory_items: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of entries held by the in-memory tier",
    )
    cache_enable_compression: bool = Field(
        default=False,
        description="Compress serialized cache payloads",
    )
    cache_key_prefix: str = Field(
        default="portfolio:",
        description="Namespace prepended to every cache key",
    )
    cache_sweep_interval: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between sweeps of the in-memory tier",
    )
    cache_max_reconnect_attempts: int = Field(
        default=3,
        ge=0,
        description="Consecutive sweep-driven reconnects tried while Redis is down",
    )

    # ========================================
    # Retry / Backoff
    # ========================================
    retry_max_attempts: int = Field(
        default=3,
        ge=0,
        description="Maximum retries for transient upstream failures",
    )
    retry_base_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Base backoff delay in milliseconds",
    )
    retry_backoff_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Exponential backoff multiplier",
    )

    # ========================================
    # YouTube
    # ========================================
    youtube_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="YouTube Data API v3 key",
    )
    youtube_channel_id: str = Field(
        default="",
        description="Channel whose uploads are listed",
    )
    youtube_max_results: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Default page size for channel videos",
    )
    youtube_order: YouTubeOrder = Field(
        default=YouTubeOrder.DATE,
        description="Sort order for channel videos",
    )
    youtube_safe_search: SafeSearch = Field(
        default=SafeSearch.MODERATE,
        description="Safe search level",
    )
    youtube_cache_ttl: int = Field(
        default=3600,
        ge=1,
        description="Cache TTL for YouTube responses in seconds",
    )
    youtube_max_requests_per_minute: int = Field(
        default=100,
        ge=1,
        description="Client-side per-minute request ceiling",
    )
    youtube_max_requests_per_day: int = Field(
        default=10000,
        ge=1,
        description="Client-side daily request ceiling (API quota)",
    )

    # ========================================
    # GitHub
    # ========================================
    github_username: str = Field(
        default="",
        description="GitHub account whose repositories are listed",
    )
    github_token: SecretStr | None = Field(
        default=None,
        description="Optional personal access token for higher rate limits",
    )
    github_cache_ttl: int = Field(
        default=300,
        ge=1,
        description="Cache TTL for GitHub responses in seconds",
    )
    github_max_requests_per_minute: int = Field(
        default=60,
        ge=1,
        description="Client-side per-minute request ceiling",
    )
    github_max_requests_per_day: int = Field(
        default=5000,
        ge=1,
        description="Client-side daily request ceiling",
    )

    # ========================================
    # Instagram (Juicer feed)
    # ========================================
    juicer_feed_id: str = Field(
        default="",
        description="Juicer feed aggregating the Instagram account",
    )
    juicer_feed_url: str = Field(
        default="",
        description="Public Juicer hub URL (defaults to the hub of the feed id)",
    )
    instagram_max_results: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum posts returned from the feed",
    )
    instagram_cache_ttl: int = Field(
        default=900,
        ge=1,
        description="Cache TTL for Instagram responses in seconds",
    )

    # ========================================
    # Derived
    # ========================================
    @property
    def is_development(self) -> bool:
        return self.app_env == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.app_env == Environment.PRODUCTION

    @property
    def use_json_logs(self) -> bool:
        return self.log_format == LogFormat.JSON or self.is_production


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, parsed once. Routes receive them through `SettingsDep`."""
    return Settings()
