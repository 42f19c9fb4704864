"""Phase 2 capability tokens.

An approved business owner has no session with the onboarding app, so the
approval hands them a signed, self-contained JWT instead. The token names
the business, the owner and the legacy application, and is valid for a
fixed window. Nothing is stored server-side: a token stays valid until it
expires, however many times it is presented.

Claim timestamps (``issued_at``, ``expires_at``) are epoch milliseconds;
the registered ``iat``/``exp`` claims carry the same instants in seconds so
the JWT library enforces expiry as well.
"""

import logging
import time
from dataclasses import dataclass, asdict
from datetime import timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from marketplace.core.config import ConfigurationError, Settings

logger = logging.getLogger(__name__)

PHASE2 = "phase2"
ONBOARDING_PATH = "/provider-onboarding/phase2"

# Secrets that must never sign a token
UNSAFE_SECRETS = {
    "your-secret-key",
    "dev-secret-key-change-in-production",
    "changeme",
    "password",
    "secret",
}

REQUIRED_CLAIMS = ("business_id", "user_id", "application_id", "issued_at", "expires_at", "phase")

# Registered claims a phase 2 token must carry, not merely match when present
DECODE_OPTIONS = {"require_aud": True, "require_iss": True, "require_exp": True}


class TokenError(Exception):
    """Base class for token verification failures."""

    code = "invalid_token"
    message = "Invalid token"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidToken(TokenError):
    code = "invalid_token"
    message = "Invalid token format"


class ExpiredToken(TokenError):
    code = "expired_token"
    message = "Token expired"


class WrongAudienceOrIssuer(TokenError):
    code = "wrong_audience_or_issuer"
    message = "Token audience or issuer mismatch"


class WrongPhase(TokenError):
    code = "wrong_phase"
    message = "Invalid token type"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TokenSettings:
    """Signing configuration, built once at startup and passed explicitly."""

    secret: str
    base_url: str
    algorithm: str = "HS256"
    issuer: str = "roam-admin"
    audience: str = "roam-provider-app"
    ttl: timedelta = timedelta(days=7)

    def __post_init__(self):
        if not self.secret:
            raise ConfigurationError(
                "Server configuration error",
                details="JWT_SECRET is not set; refusing to issue unsigned tokens",
            )
        if self.secret in UNSAFE_SECRETS:
            raise ConfigurationError(
                "Server configuration error",
                details="JWT_SECRET has an unsafe default value",
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenSettings":
        return cls(
            secret=settings.jwt_secret or "",
            base_url=settings.frontend_url,
            algorithm=settings.jwt_algorithm,
            issuer=settings.token_issuer,
            audience=settings.token_audience,
            ttl=timedelta(days=settings.approval_token_ttl_days),
        )


@dataclass(frozen=True)
class CapabilityClaims:
    """Claim set carried by a phase 2 token."""

    business_id: str
    user_id: str
    application_id: str
    issued_at: int
    expires_at: int
    phase: str = PHASE2
    step: Optional[str] = None

    @classmethod
    def for_approval(
        cls,
        business_id: str,
        user_id: str,
        application_id: str,
        *,
        ttl: timedelta,
        issued_at: Optional[int] = None,
        step: Optional[str] = None,
    ) -> "CapabilityClaims":
        issued = issued_at if issued_at is not None else now_ms()
        return cls(
            business_id=str(business_id),
            user_id=str(user_id),
            application_id=str(application_id),
            issued_at=issued,
            expires_at=issued + int(ttl.total_seconds() * 1000),
            step=step,
        )

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        if payload["step"] is None:
            del payload["step"]
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "CapabilityClaims":
        missing = [name for name in REQUIRED_CLAIMS if payload.get(name) is None]
        if missing:
            raise InvalidToken(f"Token is missing claims: {', '.join(missing)}")
        try:
            return cls(
                business_id=str(payload["business_id"]),
                user_id=str(payload["user_id"]),
                application_id=str(payload["application_id"]),
                issued_at=int(payload["issued_at"]),
                expires_at=int(payload["expires_at"]),
                phase=str(payload["phase"]),
                step=payload.get("step"),
            )
        except (TypeError, ValueError) as e:
            raise InvalidToken(f"Malformed token claims: {e}")


def _names_audience_or_issuer(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in ("audience", "issuer", "\"aud\"", "\"iss\""))


def issue(claims: CapabilityClaims, config: TokenSettings) -> str:
    """Sign ``claims`` into a JWT whose ``exp`` matches ``claims.expires_at``."""
    to_encode = claims.to_payload()
    to_encode.update({
        "iat": claims.issued_at // 1000,
        "exp": claims.expires_at // 1000,
        "iss": config.issuer,
        "aud": config.audience,
    })
    return jwt.encode(to_encode, config.secret, algorithm=config.algorithm)


def verify(token: str, config: TokenSettings, *, now: Optional[int] = None) -> CapabilityClaims:
    """
    Verify a phase 2 token and return its claims.

    Raises:
        InvalidToken: Bad signature, malformed token or missing claims
        ExpiredToken: ``exp`` or ``expires_at`` has passed
        WrongAudienceOrIssuer: ``aud``/``iss`` do not match the configuration
        WrongPhase: ``phase`` is not ``phase2``
    """
    if not token or not isinstance(token, str):
        raise InvalidToken("Token required")

    try:
        payload = jwt.decode(
            token,
            config.secret,
            algorithms=[config.algorithm],
            audience=config.audience,
            issuer=config.issuer,
            options=DECODE_OPTIONS,
        )
    except ExpiredSignatureError:
        raise ExpiredToken()
    except JWTClaimsError as e:
        if _names_audience_or_issuer(e):
            raise WrongAudienceOrIssuer(str(e))
        raise InvalidToken(f"Invalid token claims: {e}")
    except JWTError as e:
        # a missing required claim surfaces as a plain JWTError
        if _names_audience_or_issuer(e):
            raise WrongAudienceOrIssuer(str(e))
        raise InvalidToken()

    if payload.get("phase") != PHASE2:
        logger.warning("Rejected token with phase %r", payload.get("phase"))
        raise WrongPhase()

    claims = CapabilityClaims.from_payload(payload)

    current = now if now is not None else now_ms()
    if claims.expires_at <= current:
        raise ExpiredToken()

    return claims


def build_url(token: str, base_url: str) -> str:
    """Compose the phase 2 onboarding link carrying ``token``."""
    return f"{base_url.rstrip('/')}{ONBOARDING_PATH}?{urlencode({'token': token})}"


class CapabilityTokenCodec:
    """Binds the token functions to one ``TokenSettings`` instance."""

    def __init__(self, config: TokenSettings):
        self.config = config

    @classmethod
    def from_settings(cls, settings: Settings) -> "CapabilityTokenCodec":
        return cls(TokenSettings.from_settings(settings))

    def new_claims(
        self,
        business_id: str,
        user_id: str,
        application_id: str,
        *,
        step: Optional[str] = None,
    ) -> CapabilityClaims:
        return CapabilityClaims.for_approval(
            business_id, user_id, application_id, ttl=self.config.ttl, step=step,
        )

    def issue(self, claims: CapabilityClaims) -> str:
        return issue(claims, self.config)

    def verify(self, token: str, *, now: Optional[int] = None) -> CapabilityClaims:
        return verify(token, self.config, now=now)

    def build_url(self, token: str) -> str:
        return build_url(token, self.config.base_url)
