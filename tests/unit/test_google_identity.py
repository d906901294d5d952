"""
Tests for Google ID token verification.
"""

import pytest
from unittest.mock import AsyncMock, patch

from weekly_feedback.exceptions import AuthenticationFailed
from weekly_feedback.integrations.google_identity import check_token_payload, verify_google_token

NOW = 1_770_000_000


def payload(**overrides):
    data = {
        "aud": "client-123",
        "email": "Ana@KubaPay.com",
        "email_verified": "true",
        "exp": str(NOW + 3600),
        "name": "Ana Lopez",
        "given_name": "Ana",
    }
    data.update(overrides)
    return {k: v for k, v in data.items() if v is not None}


class TestCheckTokenPayload:

    def test_valid_token(self):
        user = check_token_payload(payload(), "client-123", now=NOW)

        assert user.email == "ana@kubapay.com"
        assert user.given_name == "Ana"

    def test_audience_ignored_without_client_id(self):
        assert check_token_payload(payload(aud="other"), "", now=NOW).email == "ana@kubapay.com"

    def test_name_defaults_to_local_part(self):
        assert check_token_payload(payload(name=None), now=NOW).name == "ana"

    @pytest.mark.parametrize("overrides,code", [
        ({"aud": "other"}, "INVALID_AUDIENCE"),
        ({"email": None}, "MISSING_EMAIL"),
        ({"email_verified": "false"}, "EMAIL_NOT_VERIFIED"),
        ({"email_verified": None}, "EMAIL_NOT_VERIFIED"),
        ({"exp": str(NOW - 1)}, "TOKEN_EXPIRED"),
        ({"exp": "soon"}, "TOKEN_EXPIRED"),
    ])
    def test_rejections(self, overrides, code):
        with pytest.raises(AuthenticationFailed) as exc:
            check_token_payload(payload(**overrides), "client-123", now=NOW)

        assert exc.value.code == code
        assert exc.value.status_code == 401

    def test_boolean_verified_flag(self):
        assert check_token_payload(payload(email_verified=True), now=NOW).email == "ana@kubapay.com"


class TestVerifyGoogleToken:

    @pytest.mark.asyncio
    async def test_uses_configured_client_id(self, runtime_config):
        config = runtime_config.with_overrides(google_client_id="client-123")

        with patch(
            "weekly_feedback.integrations.google_identity.fetch_token_info",
            AsyncMock(return_value=payload(exp=None)),
        ):
            user = await verify_google_token("token", config)

        assert user.email == "ana@kubapay.com"

    @pytest.mark.asyncio
    async def test_rejected_token_propagates(self, runtime_config):
        with patch(
            "weekly_feedback.integrations.google_identity.fetch_token_info",
            AsyncMock(side_effect=AuthenticationFailed("Invalid or expired token", "INVALID_TOKEN")),
        ):
            with pytest.raises(AuthenticationFailed) as exc:
                await verify_google_token("token", runtime_config)

        assert exc.value.code == "INVALID_TOKEN"
