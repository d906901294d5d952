"""
Per-invocation configuration snapshot.

Settings are read from the environment once at import time; each HTTP request
or scheduled job resolves a frozen RuntimeConfig from them and passes it down,
so services never reach for ambient state mid-operation.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from config import Settings, settings as default_settings
from .utils.validation import is_domain_allowed


@dataclass(frozen=True)
class RuntimeConfig:
    """Immutable view of the settings a single request or job needs."""

    timezone: str = "Europe/London"
    form_url: str = ""
    allowed_domains: Tuple[str, ...] = ()
    super_admin_emails: Tuple[str, ...] = ()
    google_client_id: str = ""
    google_service_account_key: str = ""
    google_oauth_client_id: str = ""
    google_oauth_client_secret: str = ""
    google_oauth_refresh_token: str = ""
    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com/v1"
    deepseek_model: str = "deepseek-chat"
    analysis_timeout_seconds: float = 60.0
    legacy_read_merge: bool = False

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "RuntimeConfig":
        s = source or default_settings
        return cls(
            timezone=s.timezone,
            form_url=s.form_url,
            allowed_domains=tuple(s.allowed_domain_list),
            super_admin_emails=tuple(s.super_admin_list),
            google_client_id=s.google_client_id,
            google_service_account_key=s.google_service_account_key,
            google_oauth_client_id=s.google_oauth_client_id,
            google_oauth_client_secret=s.google_oauth_client_secret,
            google_oauth_refresh_token=s.google_oauth_refresh_token,
            deepseek_api_key=s.deepseek_api_key,
            deepseek_base_url=s.deepseek_base_url,
            deepseek_model=s.deepseek_model,
            analysis_timeout_seconds=s.analysis_timeout_seconds,
            legacy_read_merge=s.legacy_read_merge,
        )

    def with_overrides(self, **changes) -> "RuntimeConfig":
        return replace(self, **changes)

    def is_super_admin(self, email: Optional[str]) -> bool:
        return bool(email) and email.strip().lower() in self.super_admin_emails

    def is_domain_allowed(self, email: Optional[str]) -> bool:
        return is_domain_allowed(email, self.allowed_domains)

    @property
    def analysis_configured(self) -> bool:
        return bool(self.deepseek_api_key)

    @property
    def email_configured(self) -> bool:
        if self.google_service_account_key:
            return True
        return bool(
            self.google_oauth_client_id
            and self.google_oauth_client_secret
            and self.google_oauth_refresh_token
        )


def get_runtime_config() -> RuntimeConfig:
    """Resolve a fresh snapshot from the process settings (FastAPI dependency)."""
    return RuntimeConfig.from_settings()
