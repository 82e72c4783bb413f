"""
Redis persistence for identities and the token registry.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.logging import get_logger
from ..exceptions import PartialDeleteError, StoreError, UserAlreadyExistsError, UserNotFoundError
from ..models import TokenClass, TokenEntry, TokenPair, UserData


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialStore:
    """Redis-backed credential store.

    Layout:
        users            hash, field = normalised email, value = password hash
        token:<jti>      hash {sub, typ[, pair]} with TTL = remaining token lifetime

    A token is live iff its ``token:<jti>`` key exists. Every call is bounded
    by ``timeout_seconds``; Redis failures and timeouts surface as
    ``StoreError``. Task cancellation propagates unchanged.
    """

    USERS_KEY = "users"
    TOKEN_PREFIX = "token:"

    def __init__(
        self,
        redis_url: str,
        timeout_seconds: float = 5.0,
        client: Optional[redis.Redis] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.redis_url = redis_url
        self.timeout_seconds = timeout_seconds
        self.redis: Optional[redis.Redis] = client
        self._clock = clock or _utcnow
        self.logger = get_logger("auth.store.redis")

    async def connect(self):
        """Open the connection pool and check it answers."""
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.timeout_seconds,
                socket_timeout=self.timeout_seconds,
                health_check_interval=30
            )

        await self._call("ping", lambda client: client.ping())
        self.logger.info("Credential store connected")

    async def close(self):
        """Close the connection pool."""
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Credential store closed")

    async def ping(self) -> bool:
        """Health probe; never raises."""
        try:
            await self._call("ping", lambda client: client.ping())
            return True
        except StoreError:
            return False

    async def _call(self, operation: str, command: Callable[[redis.Redis], Awaitable[Any]]) -> Any:
        if self.redis is None:
            raise StoreError("Credential store is not connected", details={"operation": operation})

        try:
            return await asyncio.wait_for(command(self.redis), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            self.logger.error("Credential store timeout", operation=operation, timeout=self.timeout_seconds)
            raise StoreError("Credential store timed out", details={"operation": operation}) from e
        except RedisError as e:
            self.logger.error("Credential store failure", operation=operation, error=str(e))
            raise StoreError("Credential store failure", details={"operation": operation}) from e

    def _token_key(self, token_id: str) -> str:
        return f"{self.TOKEN_PREFIX}{token_id}"

    async def create_user(self, email: str, password_hash: bytes):
        """Insert an identity record unless one already exists."""
        created = await self._call(
            "create_user",
            lambda client: client.hsetnx(self.USERS_KEY, email, password_hash)
        )
        if not created:
            raise UserAlreadyExistsError(email)

    async def get_user_by_email(self, email: str) -> UserData:
        password_hash = await self._call(
            "get_user_by_email",
            lambda client: client.hget(self.USERS_KEY, email)
        )
        if not password_hash:
            raise UserNotFoundError()

        if isinstance(password_hash, str):
            password_hash = password_hash.encode("utf-8")
        return UserData(email=email, password_hash=password_hash)

    async def create_token_entries(self, pair: TokenPair):
        """Record both tokens of ``pair`` as live until their own expiry."""
        now = self._clock()
        entries: List[Tuple[str, Dict[str, str], int]] = []

        for token_id, token_class, expires_at, extra in (
            (pair.access_id, TokenClass.ACCESS, pair.access_expires_at, {"pair": pair.refresh_id}),
            (pair.refresh_id, TokenClass.REFRESH, pair.refresh_expires_at, {}),
        ):
            ttl_ms = int((expires_at - now).total_seconds() * 1000)
            if ttl_ms <= 0:
                # Already expired; an absent entry reads as revoked
                self.logger.debug("Skipping expired token entry", token_id=token_id)
                continue
            mapping = {"sub": pair.subject, "typ": token_class.value, **extra}
            entries.append((self._token_key(token_id), mapping, ttl_ms))

        if not entries:
            return

        async def _write(client: redis.Redis):
            async with client.pipeline(transaction=True) as pipe:
                for key, mapping, ttl_ms in entries:
                    pipe.hset(key, mapping=mapping)
                    pipe.pexpire(key, ttl_ms)
                return await pipe.execute()

        await self._call("create_token_entries", _write)

    async def delete_token_entries(self, *token_ids: str):
        """Delete registry entries in a single atomic DEL.

        Raises:
            PartialDeleteError: fewer keys were deleted than requested, which
                means some entry was already gone (expired, revoked, or taken
                by a concurrent rotation).
        """
        if not token_ids:
            return

        keys = [self._token_key(token_id) for token_id in token_ids]
        deleted = await self._call("delete_token_entries", lambda client: client.delete(*keys))

        if deleted != len(token_ids):
            self.logger.warning(
                "Partial token delete",
                requested=len(token_ids),
                deleted=deleted
            )
            raise PartialDeleteError(token_ids, deleted)

    async def is_token_live(self, token_id: str) -> bool:
        exists = await self._call(
            "is_token_live",
            lambda client: client.exists(self._token_key(token_id))
        )
        return exists > 0

    async def get_token_entry(self, token_id: str) -> Optional[TokenEntry]:
        """Return the live registry entry for ``token_id`` or None."""
        data = await self._call(
            "get_token_entry",
            lambda client: client.hgetall(self._token_key(token_id))
        )
        if not data:
            return None

        try:
            return TokenEntry(
                token_id=token_id,
                subject=data["sub"],
                token_class=TokenClass(data["typ"]),
                pair_id=data.get("pair"),
            )
        except (KeyError, ValueError) as e:
            raise StoreError("Corrupt token registry entry", details={"token_id": token_id}) from e
