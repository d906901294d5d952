from .gmail import GmailSender, GmailSession, SendResult
from .google_identity import VerifiedUser, verify_google_token

__all__ = [
    "GmailSender",
    "GmailSession",
    "SendResult",
    "VerifiedUser",
    "verify_google_token",
]
