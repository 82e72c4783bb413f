"""
Signed token codec for the auth service.

Tokens are HS256 JWTs. Access and refresh tokens are signed with
different secrets, so a leaked refresh secret cannot forge access tokens and
vice versa. Minting is pure: it never touches storage.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from jose import jwt
from jose.exceptions import JWTError

from shared.config import BaseConfig
from shared.errors import ConfigurationError
from shared.logging import get_logger
from ..exceptions import InvalidTokenClassError, SignatureInvalidError
from ..models import Claims, TokenClass, TokenPair

# Well-known development fallbacks; never acceptable in production
DEFAULT_ACCESS_SECRET = "my_secret_key"
DEFAULT_REFRESH_SECRET = "my_refresh_secret_key"

DEFAULT_ACCESS_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TTL = timedelta(hours=24)

REQUIRED_CLAIMS = ("exp", "iat", "sub", "jti")


@dataclass(frozen=True)
class TokenSettings:
    """Signing configuration for both token classes."""

    access_secret: str
    refresh_secret: str
    access_ttl: timedelta = DEFAULT_ACCESS_TTL
    refresh_ttl: timedelta = DEFAULT_REFRESH_TTL
    issuer: str = "auth-service"
    algorithm: str = "HS256"
    using_default_secrets: bool = False

    def __post_init__(self):
        if not self.access_secret or not self.refresh_secret:
            raise ConfigurationError("Signing secrets must not be empty")
        if self.access_secret == self.refresh_secret:
            raise ConfigurationError("Access and refresh tokens must use different signing secrets")
        if self.access_ttl <= timedelta(0) or self.refresh_ttl <= timedelta(0):
            raise ConfigurationError("Token lifetimes must be positive")

    @classmethod
    def from_config(cls, config: BaseConfig) -> "TokenSettings":
        """Resolve signing secrets once from process configuration.

        When either secret is missing both fall back to the development
        defaults and ``using_default_secrets`` is set so the caller can report
        the degraded security. In production the fallback is refused.
        """
        access, refresh = config.access_secret, config.refresh_secret
        using_defaults = not access or not refresh
        if using_defaults:
            if config.is_production:
                raise ConfigurationError(
                    "Signing secrets are not configured",
                    details={"required": ["AUTH_ACCESS_SECRET", "AUTH_REFRESH_SECRET"]},
                )
            access, refresh = DEFAULT_ACCESS_SECRET, DEFAULT_REFRESH_SECRET

        return cls(
            access_secret=access,
            refresh_secret=refresh,
            access_ttl=timedelta(seconds=config.access_token_ttl_seconds),
            refresh_ttl=timedelta(seconds=config.refresh_token_ttl_seconds),
            issuer=config.token_issuer,
            using_default_secrets=using_defaults,
        )

    def secret_for(self, token_class: TokenClass) -> str:
        if token_class is TokenClass.ACCESS:
            return self.access_secret
        return self.refresh_secret

    def ttl_for(self, token_class: TokenClass) -> timedelta:
        if token_class is TokenClass.ACCESS:
            return self.access_ttl
        return self.refresh_ttl


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Mints and verifies access/refresh token pairs."""

    def __init__(self, settings: TokenSettings, clock: Optional[Callable[[], datetime]] = None):
        self.settings = settings
        self._clock = clock or _utcnow
        self.logger = get_logger("auth.tokens")

    def _now(self) -> datetime:
        # JWT NumericDate has second precision; keep datetimes identical to the claims
        return self._clock().astimezone(timezone.utc).replace(microsecond=0)

    def mint(self, subject_email: str) -> TokenPair:
        """Mint a fresh pair of tokens for ``subject_email``."""
        issued_at = self._now()
        access_id = str(uuid.uuid4())
        refresh_id = str(uuid.uuid4())
        access_expires_at = issued_at + self.settings.access_ttl
        refresh_expires_at = issued_at + self.settings.refresh_ttl

        return TokenPair(
            subject=subject_email,
            issued_at=issued_at,
            access_token=self._encode(TokenClass.ACCESS, subject_email, access_id, issued_at, access_expires_at),
            access_id=access_id,
            access_expires_at=access_expires_at,
            refresh_token=self._encode(TokenClass.REFRESH, subject_email, refresh_id, issued_at, refresh_expires_at),
            refresh_id=refresh_id,
            refresh_expires_at=refresh_expires_at,
        )

    def _encode(
        self,
        token_class: TokenClass,
        subject: str,
        token_id: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> str:
        claims: Dict[str, Any] = {
            "sub": subject,
            "email": subject,
            "jti": token_id,
            "typ": token_class.value,
            "iss": self.settings.issuer,
            "iat": int(issued_at.timestamp()),
            "nbf": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(claims, self.settings.secret_for(token_class), algorithm=self.settings.algorithm)

    def verify(self, token: str, token_class: TokenClass) -> Claims:
        """Verify signature, expiry and class of ``token``.

        Raises:
            InvalidTokenClassError: ``token_class`` is not a TokenClass.
            SignatureInvalidError: the token is malformed, forged, expired, or
                of the other class.
        """
        if not isinstance(token_class, TokenClass):
            raise InvalidTokenClassError(token_class)
        if not isinstance(token, str) or not token.strip():
            raise SignatureInvalidError("Token is empty")

        try:
            payload = jwt.decode(
                token.strip(),
                self.settings.secret_for(token_class),
                algorithms=[self.settings.algorithm],
                issuer=self.settings.issuer,
                options={f"require_{claim}": True for claim in REQUIRED_CLAIMS},
            )
        except JWTError as e:
            self.logger.debug("Token verification failed", token_class=token_class.value, error=str(e))
            raise SignatureInvalidError(str(e) or "Token signature is invalid") from e
        except (ValueError, TypeError) as e:
            # Garbage segments can surface as decoding errors below jose
            raise SignatureInvalidError("Malformed token") from e

        if payload.get("typ") != token_class.value:
            raise SignatureInvalidError("Token class mismatch")

        try:
            return Claims(
                subject=payload["sub"],
                email=payload.get("email") or payload["sub"],
                token_id=payload["jti"],
                token_class=token_class,
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (KeyError, ValueError, TypeError, OverflowError) as e:
            raise SignatureInvalidError("Malformed token claims") from e
