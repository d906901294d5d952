"""
Gmail integration for sending the weekly emails.

Supports:
- Service Account (Google Workspace with domain-wide delegation), sending as
  the workspace manager
- OAuth2 refresh token (single mailbox) as a fallback

A GmailSender opens one GmailSession per batch: the access token is
exchanged once and reused for every recipient. Sends never raise; each
returns a SendResult.
"""

import asyncio
import base64
import json
import logging
from dataclasses import dataclass, field
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Any, Dict, List, Optional

import aiofiles
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials as OAuth2Credentials
from google.oauth2.service_account import Credentials as ServiceAccountCredentials
from googleapiclient.discovery import build

from ..exceptions import EmailNotConfigured
from ..runtime import RuntimeConfig

logger = logging.getLogger(__name__)

GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_API_TIMEOUT = 30.0
SERVICE_ACCOUNT_FIELDS = ("type", "private_key", "client_email", "token_uri")


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ConfigValidationResult:
    """Outcome of checking the email credentials without sending anything."""
    valid: bool
    auth_method: Optional[str] = None
    service_account_email: Optional[str] = None
    has_oauth_fallback: bool = False
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def build_raw_message(
    to_email: str,
    subject: str,
    body: str,
    from_email: Optional[str] = None,
    from_name: Optional[str] = None,
) -> str:
    """Plain-text MIME message, base64url encoded for the Gmail API."""
    message = MIMEText(body, "plain", "utf-8")
    message["To"] = to_email
    message["Subject"] = subject
    if from_email:
        message["From"] = formataddr((from_name or "", from_email))
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")


class GmailSession:
    """An authenticated Gmail service reused for one batch of sends."""

    def __init__(self, service: Any, sender_email: Optional[str], auth_method: str):
        self.service = service
        self.sender_email = sender_email
        self.auth_method = auth_method

    async def send(
        self,
        to_email: str,
        subject: str,
        body: str,
        from_name: Optional[str] = None,
    ) -> SendResult:
        """Send one email. Failures are returned, never raised."""
        try:
            raw = build_raw_message(to_email, subject, body, self.sender_email, from_name)
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    self.service.users().messages().send(
                        userId="me",
                        body={"raw": raw},
                    ).execute
                ),
                timeout=GOOGLE_API_TIMEOUT,
            )
            message_id = (response or {}).get("id")
            logger.debug(f"Gmail accepted message {message_id} for {to_email}")
            return SendResult(success=True, message_id=message_id)

        except asyncio.TimeoutError:
            return SendResult(success=False, error=f"Gmail send timed out after {GOOGLE_API_TIMEOUT}s")
        except Exception as e:
            return SendResult(success=False, error=str(e) or type(e).__name__)


class GmailSender:
    """Creates Gmail sessions from the configured credentials."""

    def __init__(self, config: RuntimeConfig):
        self.config = config

    @property
    def is_configured(self) -> bool:
        return self.config.email_configured

    async def _load_service_account_info(self) -> Dict[str, Any]:
        key = self.config.google_service_account_key.strip()
        if key.startswith("{"):
            return json.loads(key)
        async with aiofiles.open(key, "r") as f:
            return json.loads(await f.read())

    def _default_sender(self) -> Optional[str]:
        return self.config.super_admin_emails[0] if self.config.super_admin_emails else None

    async def _credentials(self, impersonate_email: Optional[str]):
        """Service account with delegation first, then the OAuth refresh token."""
        subject = impersonate_email or self._default_sender()

        if self.config.google_service_account_key:
            try:
                info = await self._load_service_account_info()
                credentials = ServiceAccountCredentials.from_service_account_info(
                    info, scopes=[GMAIL_SEND_SCOPE]
                )
                if subject:
                    credentials = credentials.with_subject(subject)
                return credentials, subject, "service_account"
            except Exception as e:
                logger.warning(f"Service account credentials unusable, trying OAuth fallback: {e}")

        if (
            self.config.google_oauth_client_id
            and self.config.google_oauth_client_secret
            and self.config.google_oauth_refresh_token
        ):
            credentials = OAuth2Credentials(
                token=None,
                refresh_token=self.config.google_oauth_refresh_token,
                client_id=self.config.google_oauth_client_id,
                client_secret=self.config.google_oauth_client_secret,
                token_uri=GOOGLE_TOKEN_URL,
                scopes=[GMAIL_SEND_SCOPE],
            )
            return credentials, subject, "oauth2"

        raise EmailNotConfigured()

    async def open_session(self, impersonate_email: Optional[str] = None) -> GmailSession:
        """
        Exchange credentials for an access token once and build the service.

        Raises:
            EmailNotConfigured: no usable credentials, or the token exchange failed
        """
        credentials, sender, auth_method = await self._credentials(impersonate_email)

        try:
            await asyncio.wait_for(
                asyncio.to_thread(credentials.refresh, Request()),
                timeout=GOOGLE_API_TIMEOUT,
            )
            service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
        except Exception as e:
            logger.error(f"Gmail token exchange failed ({auth_method}): {e}")
            raise EmailNotConfigured(f"Gmail authentication failed: {e}")

        logger.info(f"Gmail session opened via {auth_method} for {sender or 'default mailbox'}")
        return GmailSession(service, sender, auth_method)

    async def validate_config(self) -> ConfigValidationResult:
        """Check credentials are present and well-formed; no token exchange."""
        result = ConfigValidationResult(valid=False)
        result.has_oauth_fallback = bool(
            self.config.google_oauth_client_id
            and self.config.google_oauth_client_secret
            and self.config.google_oauth_refresh_token
        )

        if self.config.google_service_account_key:
            try:
                info = await self._load_service_account_info()
                missing = [f for f in SERVICE_ACCOUNT_FIELDS if not info.get(f)]
                if missing:
                    result.errors.append(f"Service account key missing fields: {', '.join(missing)}")
                elif "BEGIN PRIVATE KEY" not in info["private_key"]:
                    result.errors.append("Service account private key is not PEM encoded")
                else:
                    result.valid = True
                    result.auth_method = "service_account"
                    result.service_account_email = info["client_email"]
            except Exception as e:
                result.errors.append(f"Service account key could not be read: {e}")
        else:
            result.warnings.append("GOOGLE_SERVICE_ACCOUNT_KEY not set")

        if not result.valid and result.has_oauth_fallback:
            result.valid = True
            result.auth_method = "oauth2"
        elif not result.has_oauth_fallback:
            result.warnings.append("No OAuth refresh token fallback configured")

        if not result.valid and not result.errors:
            result.errors.append("No email credentials configured")
        return result
