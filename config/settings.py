"""
Configuration settings for the Weekly Feedback service.
All sensitive values are loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List


DEFAULT_ALLOWED_DOMAINS = "kubapay.com,vixtechnology.com,voqa.com"


def split_csv(value: str) -> List[str]:
    """Split a comma separated env value into trimmed, lower-cased entries."""
    return [item.strip().lower() for item in (value or "").split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Weekly Feedback"
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="production", env="ENVIRONMENT")

    # Server
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")

    # Public submission form
    form_url: str = Field(default="https://tools.kubagroup.com/weekly", env="FORM_URL")

    # Access control
    allowed_domains: str = Field(default=DEFAULT_ALLOWED_DOMAINS, env="ALLOWED_DOMAINS")
    super_admin_emails: str = Field(default="", env="SUPER_ADMIN_EMAILS")
    admin_emails: str = Field(default="", env="ADMIN_EMAILS")  # deprecated, read as fallback

    # Google sign-in
    google_client_id: str = Field(default="", env="GOOGLE_CLIENT_ID")

    # Gmail sending (service account preferred, OAuth refresh token as fallback)
    google_service_account_key: str = Field(default="", env="GOOGLE_SERVICE_ACCOUNT_KEY")
    google_oauth_client_id: str = Field(default="", env="GOOGLE_OAUTH_CLIENT_ID")
    google_oauth_client_secret: str = Field(default="", env="GOOGLE_OAUTH_CLIENT_SECRET")
    google_oauth_refresh_token: str = Field(default="", env="GOOGLE_OAUTH_REFRESH_TOKEN")

    # DeepSeek AI
    deepseek_api_key: str = Field(default="", env="DEEPSEEK_API_KEY")
    deepseek_base_url: str = Field(default="https://api.deepseek.com/v1", env="DEEPSEEK_BASE_URL")
    deepseek_model: str = Field(default="deepseek-chat", env="DEEPSEEK_MODEL")
    analysis_timeout_seconds: float = Field(default=60.0, env="ANALYSIS_TIMEOUT_SECONDS")

    # Database (PostgreSQL)
    database_url: str = Field(default="", env="DATABASE_URL")
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")
    db_pool_size: int = Field(default=5, env="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, env="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(default=30, env="DB_POOL_TIMEOUT")
    db_pool_recycle: int = Field(default=1800, env="DB_POOL_RECYCLE")

    # Legacy submissions are unioned into period reads until the backfill has run
    legacy_read_merge: bool = Field(default=False, env="LEGACY_READ_MERGE")

    # Scheduler Settings
    enable_scheduler: bool = Field(default=True, env="ENABLE_SCHEDULER")
    timezone: str = Field(default="Europe/London", env="TIMEZONE")
    prompt_day: str = Field(default="wed", env="PROMPT_DAY")
    prompt_hour: int = Field(default=9, env="PROMPT_HOUR")
    reminder_day: str = Field(default="thu", env="REMINDER_DAY")
    reminder_hour: int = Field(default=17, env="REMINDER_HOUR")

    @property
    def allowed_domain_list(self) -> List[str]:
        return split_csv(self.allowed_domains)

    @property
    def super_admin_list(self) -> List[str]:
        return split_csv(self.super_admin_emails) or split_csv(self.admin_emails)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
