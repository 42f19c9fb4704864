"""Tests for phase 2 capability tokens."""

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest
from jose import jwt

from marketplace.core.config import ConfigurationError, Settings
from marketplace.core.tokens import (
    CapabilityClaims,
    CapabilityTokenCodec,
    ExpiredToken,
    InvalidToken,
    TokenSettings,
    WrongAudienceOrIssuer,
    WrongPhase,
    build_url,
    now_ms,
)

from tests.conftest import TEST_SECRET, FRONTEND_URL

DAY_MS = 24 * 60 * 60 * 1000


def _raw_token(payload: dict, secret: str = TEST_SECRET, drop: tuple = ()) -> str:
    """Encode an arbitrary payload with the standard registered claims, minus ``drop``."""
    now = now_ms()
    body = {
        "iat": now // 1000,
        "exp": (now + DAY_MS) // 1000,
        "iss": "roam-admin",
        "aud": "roam-provider-app",
    }
    body.update(payload)
    for name in drop:
        body.pop(name, None)
    return jwt.encode(body, secret, algorithm="HS256")


class TestIssueAndVerify:

    def test_round_trip(self, codec):
        claims = codec.new_claims("biz-1", "user-1", "app-1")
        token = codec.issue(claims)

        verified = codec.verify(token)
        assert verified == claims
        assert verified.phase == "phase2"

    def test_default_ttl_is_seven_days(self, codec):
        claims = codec.new_claims("biz-1", "user-1", "app-1")
        assert claims.expires_at - claims.issued_at == 7 * DAY_MS

    def test_registered_claims(self, codec):
        claims = codec.new_claims("biz-1", "user-1", "app-1")
        payload = jwt.get_unverified_claims(codec.issue(claims))

        assert payload["iss"] == "roam-admin"
        assert payload["aud"] == "roam-provider-app"
        assert payload["exp"] == claims.expires_at // 1000
        assert payload["issued_at"] == claims.issued_at
        assert "step" not in payload

    def test_optional_step_survives(self, codec):
        claims = codec.new_claims("biz-1", "user-1", "app-1", step="services")
        assert codec.verify(codec.issue(claims)).step == "services"

    def test_expired_token(self, codec, token_settings):
        issued = now_ms() - 8 * DAY_MS
        claims = CapabilityClaims.for_approval(
            "biz-1", "user-1", "app-1", ttl=token_settings.ttl, issued_at=issued,
        )
        with pytest.raises(ExpiredToken) as exc_info:
            codec.verify(codec.issue(claims))
        assert exc_info.value.to_dict() == {"error": "Token expired", "code": "expired_token"}

    def test_expires_at_is_checked_independently(self, codec):
        """A token is expired once ``now`` reaches ``expires_at``."""
        claims = codec.new_claims("biz-1", "user-1", "app-1")
        token = codec.issue(claims)

        codec.verify(token, now=claims.expires_at - 1)
        with pytest.raises(ExpiredToken):
            codec.verify(token, now=claims.expires_at)

    def test_wrong_secret(self, codec):
        other = CapabilityTokenCodec(TokenSettings(secret="another-secret-value", base_url=FRONTEND_URL))
        token = other.issue(other.new_claims("biz-1", "user-1", "app-1"))
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_tampered_payload(self, codec):
        token = codec.issue(codec.new_claims("biz-1", "user-1", "app-1"))
        forged = _raw_token({"business_id": "biz-2", "user_id": "user-1"})

        header, _, signature = token.split(".")
        tampered = ".".join([header, forged.split(".")[1], signature])
        with pytest.raises(InvalidToken):
            codec.verify(tampered)

    def test_garbage(self, codec):
        with pytest.raises(InvalidToken) as exc_info:
            codec.verify("not-a-jwt")
        assert exc_info.value.code == "invalid_token"

    def test_empty_token(self, codec):
        with pytest.raises(InvalidToken):
            codec.verify("")

    def test_wrong_phase(self, codec):
        claims = codec.new_claims("biz-1", "user-1", "app-1")
        payload = claims.to_payload()
        payload["phase"] = "phase1"

        with pytest.raises(WrongPhase) as exc_info:
            codec.verify(_raw_token(payload))
        assert exc_info.value.message == "Invalid token type"

    def test_missing_claims(self, codec):
        payload = codec.new_claims("biz-1", "user-1", "app-1").to_payload()
        del payload["user_id"]

        with pytest.raises(InvalidToken) as exc_info:
            codec.verify(_raw_token(payload))
        assert "user_id" in exc_info.value.message

    def test_wrong_audience(self, codec):
        other = CapabilityTokenCodec(TokenSettings(
            secret=TEST_SECRET, base_url=FRONTEND_URL, audience="customer-app",
        ))
        token = other.issue(other.new_claims("biz-1", "user-1", "app-1"))
        with pytest.raises(WrongAudienceOrIssuer):
            codec.verify(token)

    @pytest.mark.parametrize("claim", ["aud", "iss"])
    def test_missing_audience_or_issuer(self, codec, claim):
        """A correctly signed token must still name this audience and issuer."""
        payload = codec.new_claims("biz-1", "user-1", "app-1").to_payload()
        with pytest.raises(WrongAudienceOrIssuer):
            codec.verify(_raw_token(payload, drop=(claim,)))

    def test_missing_exp(self, codec):
        payload = codec.new_claims("biz-1", "user-1", "app-1").to_payload()
        with pytest.raises(InvalidToken):
            codec.verify(_raw_token(payload, drop=("exp",)))

    def test_malformed_registered_claim_is_invalid(self, codec):
        """Claim errors unrelated to audience or issuer are format errors."""
        payload = codec.new_claims("biz-1", "user-1", "app-1").to_payload()
        payload["iat"] = "soon"
        with pytest.raises(InvalidToken) as exc_info:
            codec.verify(_raw_token(payload))
        assert exc_info.value.code == "invalid_token"

    def test_wrong_issuer(self, codec):
        other = CapabilityTokenCodec(TokenSettings(
            secret=TEST_SECRET, base_url=FRONTEND_URL, issuer="someone-else",
        ))
        token = other.issue(other.new_claims("biz-1", "user-1", "app-1"))
        with pytest.raises(WrongAudienceOrIssuer):
            codec.verify(token)


class TestTokenSettings:

    def test_missing_secret(self):
        with pytest.raises(ConfigurationError):
            TokenSettings(secret="", base_url=FRONTEND_URL)

    @pytest.mark.parametrize("secret", ["changeme", "your-secret-key"])
    def test_unsafe_secret(self, secret):
        with pytest.raises(ConfigurationError) as exc_info:
            TokenSettings(secret=secret, base_url=FRONTEND_URL)
        assert exc_info.value.message == "Server configuration error"

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            jwt_secret=TEST_SECRET,
            frontend_url="https://app.example.test",
            approval_token_ttl_days=3,
        )
        config = TokenSettings.from_settings(settings)
        assert config.base_url == "https://app.example.test"
        assert config.ttl == timedelta(days=3)
        assert config.audience == "roam-provider-app"

    def test_from_settings_without_secret(self):
        with pytest.raises(ConfigurationError):
            CapabilityTokenCodec.from_settings(Settings(_env_file=None, jwt_secret=None))


class TestBuildUrl:

    def test_url_shape(self, codec):
        url = codec.build_url("abc.def.ghi")
        assert url == f"{FRONTEND_URL}/provider-onboarding/phase2?token=abc.def.ghi"

    def test_trailing_slash_normalised(self):
        assert build_url("t", "https://app.example.test/") == (
            "https://app.example.test/provider-onboarding/phase2?token=t"
        )

    def test_token_is_recoverable_from_url(self, codec):
        token = codec.issue(codec.new_claims("biz-1", "user-1", "app-1"))
        query = parse_qs(urlparse(codec.build_url(token)).query)
        assert query["token"] == [token]
