from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    store_url: str = Field(..., min_length=1, description="SQLAlchemy URL of the managed store")
    store_key: str = Field(..., min_length=1, description="Access key for the managed store")
    cron_secret: str = Field(..., min_length=1, description="Bearer secret for the cron endpoint")
    redis_url: str = Field("redis://localhost:6379/0")
    cleanup_frequency: int = Field(60 * 60 * 24)
    api_title: str = Field("Wireline Admin API")
    access_token_expire_minutes: int = Field(15)
    refresh_token_expire_minutes: int = Field(60 * 24 * 7)
    jwt_secret: str = Field("secret")
    jwt_algorithm: str = Field("HS256")
    smtp_host: str = Field("smtp.gmail.com")
    smtp_port: int = Field(587)
    smtp_user: Optional[str] = Field(None)
    smtp_password: Optional[str] = Field(None)
    mail_from: str = Field("noreply@wireline.local")
    rate_limit_enabled: bool = Field(True)
    app_version: str = Field("1.0.0")


settings = Settings()
