"""
Bearer-token authentication dependencies.
"""

import logging
from typing import Optional

from fastapi import Depends, Header

from ..exceptions import AuthenticationFailed, NotAuthorized
from ..integrations.google_identity import VerifiedUser, verify_google_token
from ..runtime import RuntimeConfig, get_runtime_config
from ..services.submissions import Identity
from ..utils.audit_logger import AuditAction, AuditLevel, log_audit_event

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationFailed("Missing Authorization header", "MISSING_AUTH_HEADER")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationFailed("Authorization header must be 'Bearer <token>'", "INVALID_AUTH_FORMAT")
    return token.strip()


async def get_current_user(
    authorization: Optional[str] = Header(None),
    config: RuntimeConfig = Depends(get_runtime_config),
) -> VerifiedUser:
    """Verified Google identity of the caller."""
    token = extract_bearer_token(authorization)
    try:
        return await verify_google_token(token, config)
    except AuthenticationFailed as e:
        await log_audit_event(
            AuditAction.AUTH_FAILURE,
            details={"code": e.code},
            level=AuditLevel.WARNING,
        )
        raise


def require_super_admin(
    user: VerifiedUser = Depends(get_current_user),
    config: RuntimeConfig = Depends(get_runtime_config),
) -> VerifiedUser:
    if not config.is_super_admin(user.email):
        raise NotAuthorized("Super admin access required", "NOT_SUPER_ADMIN")
    return user


def identity_of(user: VerifiedUser) -> Identity:
    return Identity(email=user.email, name=user.name, first_name=user.given_name)
