"""Configuration models."""

from typing import List, Optional

from pydantic import BaseModel, Field


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("newsagg", description="Database name")
    user: str = Field("newsagg_user", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")
    pool_size: int = Field(10, ge=1, description="Maximum pooled connections")
    connect_timeout: int = Field(10, ge=1, description="Connection timeout in seconds")


class FetchConfig(BaseModel):
    """Fetch scheduling and run coordination."""

    min_interval_minutes: int = Field(
        2, ge=0, description="Minimum minutes between two non-forced fetch runs"
    )
    lock_ttl_minutes: int = Field(
        10, ge=1, description="Maximum time the run lock may be held"
    )
    schedule_interval_minutes: int = Field(
        15, ge=1, description="Interval used by the schedule command"
    )
    metrics_ttl_hours: int = Field(24, ge=1, description="How long run metrics are kept")


class CleanupConfig(BaseModel):
    """Article retention."""

    days: int = Field(30, ge=1, description="Number of days to keep articles")
    hour: int = Field(2, ge=0, le=23, description="Hour of day for scheduled cleanup")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Log level")
    json_output: bool = Field(False, alias="json", description="Render log lines as JSON")

    model_config = {"populate_by_name": True}


class ProviderConfig(BaseModel):
    """Settings shared by all news providers."""

    enabled: bool = Field(True, description="Whether the provider is fetched")
    base_url: str = Field(..., description="Provider API base URL")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    api_key_env: Optional[str] = Field(None, description="Environment variable for API key")
    timeout: float = Field(30.0, gt=0, description="Request timeout in seconds")


class NewsApiConfig(ProviderConfig):
    """NewsAPI settings."""

    base_url: str = "https://newsapi.org/v2"
    api_key_env: Optional[str] = "NEWSAPI_KEY"
    query: str = Field("technology", description="Search term")
    page_size: int = Field(10, ge=1, le=100, description="Articles requested per call")
    language: str = Field("en", description="Article language")
    sort_by: str = Field("publishedAt", description="Sort order")
    retry_times: int = Field(3, ge=1, description="Attempts on connection failures")
    retry_delay_ms: int = Field(1000, ge=0, description="Fixed delay between attempts")
    cache_ttl_seconds: int = Field(3600, ge=0, description="Response cache lifetime")


class GuardianConfig(ProviderConfig):
    """The Guardian settings."""

    base_url: str = "https://content.guardianapis.com"
    api_key_env: Optional[str] = "GUARDIAN_API_KEY"
    query: str = Field("technology", description="Search term")
    page_size: int = Field(10, ge=1, le=100, description="Articles requested per call")
    show_fields: str = Field("byline,thumbnail,bodyText", description="Extra fields to return")


class NytConfig(ProviderConfig):
    """
    New York Times article search settings.

    The article search API returns a fixed 10 results per page, so there is
    no page size; use ``page`` to move through results.
    """

    base_url: str = "https://api.nytimes.com/svc/search/v2"
    api_key_env: Optional[str] = "NYT_API_KEY"
    sort: str = Field("newest", description="Sort order")
    page: int = Field(0, ge=0, le=100, description="Result page to fetch")


class ProvidersConfig(BaseModel):
    """All news providers."""

    newsapi: NewsApiConfig = Field(default_factory=NewsApiConfig)
    guardian: GuardianConfig = Field(default_factory=GuardianConfig)
    nyt: NytConfig = Field(default_factory=NytConfig)

    def items(self) -> List[tuple]:
        """Return (key, provider config) pairs in registration order."""
        return [("newsapi", self.newsapi), ("guardian", self.guardian), ("nyt", self.nyt)]


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
