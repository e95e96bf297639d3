from __future__ import annotations

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    api_key: str = "test-api-key"
    hmac_secret: str = Field("test-hmac-secret", alias="HMAC_SECRET")
    billing_ips: list[str] = Field(
        default_factory=lambda: ["127.0.0.1", "testclient"]
    )
    trusted_proxies: list[str] = Field(
        default_factory=lambda: ["127.0.0.1", "testclient"]
    )

    database_url: str = Field(
        "sqlite:////tmp/entitlements_test.db", alias="DATABASE_URL"
    )
    db_create_all: bool = Field(False, alias="DB_CREATE_ALL")

    secure_webhook: bool = Field(False, alias="SECURE_WEBHOOK")

    redis_url: str = Field("redis://localhost:6379", alias="REDIS_URL")
    rate_limit_ip_per_minute: int = Field(30, alias="RATE_LIMIT_IP_PER_MINUTE")
    rate_limit_user_per_minute: int = Field(
        120, alias="RATE_LIMIT_USER_PER_MINUTE"
    )

    reference_timezone: str = Field(
        "UTC",
        alias="REFERENCE_TIMEZONE",
        description="Timezone used for calendar month and day boundaries",
    )
    trial_days: int = Field(7, alias="TRIAL_DAYS", ge=0)

    free_daily_photo_analyses: int = Field(
        10, alias="FREE_DAILY_PHOTO_ANALYSES", ge=0
    )
    free_daily_chat_messages: int = Field(
        50, alias="FREE_DAILY_CHAT_MESSAGES", ge=0
    )
    premium_daily_photo_analyses: int = Field(
        999999, alias="PREMIUM_DAILY_PHOTO_ANALYSES", ge=0
    )
    premium_daily_chat_messages: int = Field(
        999999, alias="PREMIUM_DAILY_CHAT_MESSAGES", ge=0
    )

    model_config = ConfigDict(
        extra="ignore",
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
    )
