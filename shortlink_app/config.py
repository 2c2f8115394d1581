from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Short Link Analytics"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Database
    database_url: str = "sqlite:///./shortlink.db"

    # Short links
    base_url: str = "http://127.0.0.1:8000"
    slug_length: int = 6
    custom_slug_min_length: int = 3
    custom_slug_max_length: int = 30

    # Slug generation strategy
    slug_strategy: str = "url_safe"  # Options: "url_safe", "alphanumeric"
    slug_max_retries: Optional[int] = None  # None = retry until an unused slug is drawn

    # Click tracking
    tracking_mode: str = "blocking"  # Options: "blocking", "background"

    # Queue settings (background tracking only)
    queue_backend: str = "memory"  # Options: "memory", "redis_streams"
    redis_url: str = "redis://localhost:6379/0"
    queue_name: str = "link_clicks"
    queue_consumer_group: str = "click_workers"
    queue_max_size: int = 10000  # In-memory queue bound
    queue_batch_size: int = 100
    queue_block_ms: int = 1000
    queue_reclaim_idle_ms: int = 60000  # Pending Redis entries older than this are retried
    run_click_worker: bool = True  # Run the click worker inside the API process

    # Analytics
    default_interval: str = "1d"
    top_referrers_limit: int = 10

    # QR codes
    qr_box_size: int = 8
    qr_border: int = 2
    qr_fill_color: str = "#1e40af"

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
