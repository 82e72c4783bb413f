"""
Test helper functions and factory methods for the auth service.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from jose import jwt

from service_auth.app.exceptions import (
    PartialDeleteError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from service_auth.app.models import TokenClass, TokenEntry, TokenPair, UserData
from service_auth.app.security import PasswordHasher
from service_auth.app.tokens import TokenSettings

TEST_ACCESS_SECRET = "test-access-secret"
TEST_REFRESH_SECRET = "test-refresh-secret"


@dataclass
class SampleUser:
    """Credentials used across tests."""
    email: str = "a@b.com"
    password: str = "password1"


def create_test_settings(**overrides) -> TokenSettings:
    """Token settings with test secrets."""
    values: Dict[str, Any] = {
        "access_secret": TEST_ACCESS_SECRET,
        "refresh_secret": TEST_REFRESH_SECRET,
    }
    values.update(overrides)
    return TokenSettings(**values)


def create_fast_hasher() -> PasswordHasher:
    """Argon2 hasher with minimal cost so tests stay fast."""
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


def create_signed_token(
    secret: str,
    subject: str = "a@b.com",
    token_id: str = "token-1",
    token_class: TokenClass = TokenClass.ACCESS,
    issuer: str = "auth-service",
    expires_in: int = 900,
    issued_at: Optional[datetime] = None,
    **extra_claims
) -> str:
    """Sign arbitrary claims, e.g. to forge tokens with the wrong secret."""
    issued_at = issued_at or datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "email": subject,
        "jti": token_id,
        "typ": token_class.value,
        "iss": issuer,
        "iat": int(issued_at.timestamp()),
        "nbf": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=expires_in)).timestamp()),
    }
    claims.update(extra_claims)
    return jwt.encode(claims, secret, algorithm="HS256")


class InMemoryCredentialStore:
    """In-process stand-in for the Redis credential store.

    Mirrors the Redis semantics the engine relies on: insert-if-absent for
    users, TTL expiry for registry entries, and a delete that reports how
    many keys were actually removed. Every call yields to the event loop so
    concurrent callers interleave the way they would over the network.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.users: Dict[str, bytes] = {}
        self.tokens: Dict[str, Tuple[TokenEntry, datetime]] = {}
        self.healthy = True
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def connect(self):
        await asyncio.sleep(0)

    async def close(self):
        await asyncio.sleep(0)

    async def ping(self) -> bool:
        await asyncio.sleep(0)
        return self.healthy

    def _live(self, token_id: str) -> Optional[TokenEntry]:
        record = self.tokens.get(token_id)
        if record is None:
            return None
        entry, expires_at = record
        if expires_at <= self._clock():
            del self.tokens[token_id]
            return None
        return entry

    async def create_user(self, email: str, password_hash: bytes):
        await asyncio.sleep(0)
        if email in self.users:
            raise UserAlreadyExistsError(email)
        self.users[email] = password_hash

    async def get_user_by_email(self, email: str) -> UserData:
        await asyncio.sleep(0)
        if email not in self.users:
            raise UserNotFoundError()
        return UserData(email=email, password_hash=self.users[email])

    async def create_token_entries(self, pair: TokenPair):
        await asyncio.sleep(0)
        now = self._clock()
        if pair.access_expires_at > now:
            self.tokens[pair.access_id] = (
                TokenEntry(pair.access_id, pair.subject, TokenClass.ACCESS, pair.refresh_id),
                pair.access_expires_at,
            )
        if pair.refresh_expires_at > now:
            self.tokens[pair.refresh_id] = (
                TokenEntry(pair.refresh_id, pair.subject, TokenClass.REFRESH),
                pair.refresh_expires_at,
            )

    async def delete_token_entries(self, *token_ids: str):
        await asyncio.sleep(0)
        deleted = 0
        for token_id in token_ids:
            if self._live(token_id) is not None:
                del self.tokens[token_id]
                deleted += 1
        if deleted != len(token_ids):
            raise PartialDeleteError(token_ids, deleted)

    async def is_token_live(self, token_id: str) -> bool:
        await asyncio.sleep(0)
        return self._live(token_id) is not None

    async def get_token_entry(self, token_id: str) -> Optional[TokenEntry]:
        await asyncio.sleep(0)
        return self._live(token_id)
