"""
Application configuration settings
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Admin API credential used when publishing to the CDN
    EDS_TOKEN: Optional[str] = None

    # Markets
    DEFAULT_MARKET: str = "us"

    # Logging
    LOG_LEVEL: str = "INFO"
    DATALOG_FALLBACK_PATH: str = "/tmp/datalog.log"

    # Upstreams
    ADMIN_API_BASE: str = "https://admin.hlx.page"
    QUERY_INDEX_PAGE_SIZE: int = Field(default=256, gt=0)
    HTTP_TIMEOUT: Optional[float] = None  # None = no client-side timeout

    # Rate Limiting
    SITEMAP_RATE_LIMIT: str = "5/minute"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# Create settings instance
settings = Settings()
