"""Application configuration via environment variables."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Transit Ingest"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # TransLink API (comma-delimited, one key per developer account)
    translink_api_keys: str = Field(
        default="",
        validation_alias=AliasChoices("TRANSLINK_API", "TRANSLINK_API_KEYS"),
    )
    realtime_base_url: str = Field(
        default="https://gtfs.translink.ca",
        validation_alias=AliasChoices("REALTIME_BASE_URL", "GTFS_REALTIME_URL"),
    )
    schedule_url_template: str = Field(
        default="https://translinkweb.blob.core.windows.net/gtfs/History/{version}/google_transit.zip",
        validation_alias=AliasChoices("SCHEDULE_URL_TEMPLATE", "GTFS_STATIC_URL"),
    )

    # Rate limits and caching
    requests_per_key: int = Field(default=1000, ge=1)
    quota_window_sec: int = Field(default=60 * 60 * 24, ge=1)
    schedule_cache_ttl_sec: int = 60 * 60 * 24 * 7 * 52
    http_timeout_sec: float = 30.0
    redis_url: Optional[str] = None

    # Object store (S3 compatible)
    aws_id: str = ""
    aws_secret: str = ""
    aws_region: str = "us-west-2"
    object_store_endpoint: Optional[str] = None
    object_store_bucket: str = "translink-s3"

    # Warehouse (BigQuery insertAll behind a token issuer)
    google_endpoint: str = ""
    google_secret: str = ""
    warehouse_url: str = "https://www.googleapis.com/bigquery/v2"

    # Error reporting
    error_reporter: str = "transit_ingest.errors"

    @property
    def api_keys(self) -> list[str]:
        """Split the delimited key string into individual keys."""
        return [key.strip() for key in self.translink_api_keys.split(",") if key.strip()]

    @property
    def object_store_enabled(self) -> bool:
        return bool(self.aws_id and self.aws_secret)

    @property
    def warehouse_enabled(self) -> bool:
        return bool(self.google_endpoint and self.google_secret)

    def missing_required_env(self) -> list[str]:
        """Return required environment variables that are missing or empty."""
        missing: list[str] = []

        if not self.api_keys:
            missing.append("TRANSLINK_API")
        if bool(self.aws_id) != bool(self.aws_secret):
            missing.append("AWS_SECRET" if self.aws_id else "AWS_ID")
        if bool(self.google_endpoint) != bool(self.google_secret):
            missing.append("GOOGLE_SECRET" if self.google_endpoint else "GOOGLE_ENDPOINT")

        return missing


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
