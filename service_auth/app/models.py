"""
Domain values and HTTP schemas for the auth service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel


class TokenClass(str, Enum):
    """The two token classes; each is signed with its own secret."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class UserData:
    """Identity record as persisted by the credential store."""

    email: str
    password_hash: bytes


@dataclass(frozen=True)
class TokenPair:
    """A freshly minted access/refresh pair."""

    subject: str
    issued_at: datetime
    access_token: str
    access_id: str
    access_expires_at: datetime
    refresh_token: str
    refresh_id: str
    refresh_expires_at: datetime

    @property
    def ids(self) -> Tuple[str, str]:
        return self.access_id, self.refresh_id


@dataclass(frozen=True)
class Claims:
    """Verified token claims."""

    subject: str
    email: str
    token_id: str
    token_class: TokenClass
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenEntry:
    """A live token-registry entry."""

    token_id: str
    subject: str
    token_class: TokenClass
    pair_id: Optional[str] = None


@dataclass(frozen=True)
class RevocationResult:
    revoked_ids: Tuple[str, ...]
    already_revoked: bool


class CredentialsRequest(BaseModel):
    """Request body for signup and signin."""
    email: str
    password: str


class RefreshRequest(BaseModel):
    """Request body for token refresh; the access token travels in the Authorization header."""
    refresh_token: str


class SignUpResponse(BaseModel):
    email: str


class TokenPairResponse(BaseModel):
    """Response model for signin and refresh."""
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    access_expires_at: int
    refresh_expires_at: int

    @classmethod
    def from_pair(cls, pair: TokenPair, now: Optional[datetime] = None) -> "TokenPairResponse":
        now = now or datetime.now(timezone.utc)
        expires_in = max(0, int((pair.access_expires_at - now).total_seconds()))
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=expires_in,
            access_expires_at=int(pair.access_expires_at.timestamp()),
            refresh_expires_at=int(pair.refresh_expires_at.timestamp()),
        )


class RevokeResponse(BaseModel):
    revoked: bool
    already_revoked: bool
