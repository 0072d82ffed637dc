"""Global settings loaded from environment variables via pydantic-settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = "linux:redseen:v0.1.0 (comment tracker)"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REDSEEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = "sqlite:///./data/redseen.db"
    log_dir: str = "./data/logs"
    proxy_url: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    # Seconds slept before every Reddit request
    reddit_rate_limit: float = 1.0
    # Listing cache freshness window
    cache_ttl_seconds: int = 300
    auto_ack_seconds: float = 10.0
    read_retention_days: int = 2
