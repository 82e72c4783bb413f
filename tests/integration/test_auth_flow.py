"""
Integration tests for the auth flow against a real Redis.

Set AUTH_REDIS_URL to point at a disposable instance; the tests skip when
Redis is unreachable.
"""

import asyncio
import os
import uuid

import pytest

from service_auth.app.engine import AuthEngine
from service_auth.app.exceptions import StoreError, TokenRevokedError, UserAlreadyExistsError
from service_auth.app.store import CredentialStore
from service_auth.app.tokens import TokenCodec
from service_auth.tests.helpers import create_fast_hasher, create_test_settings

REDIS_URL = os.getenv("AUTH_REDIS_URL", "redis://localhost:6379/15")


class TestAuthFlow:
    """Integration tests for complete auth flow."""

    @pytest.fixture
    async def store(self):
        store = CredentialStore(REDIS_URL, timeout_seconds=1.0)
        try:
            await store.connect()
        except StoreError:
            pytest.skip(f"Redis not available at {REDIS_URL}")
        yield store
        await store.close()

    @pytest.fixture
    def engine(self, store):
        return AuthEngine(store=store, codec=TokenCodec(create_test_settings()), hasher=create_fast_hasher())

    @pytest.fixture
    async def email(self, store):
        email = f"user-{uuid.uuid4().hex[:12]}@example.com"
        yield email
        await store.redis.hdel(store.USERS_KEY, email)

    async def test_complete_auth_flow(self, engine, store, email):
        """Signup, signin, refresh, revoke."""
        await engine.sign_up(email, "password1")
        pair = await engine.sign_in(email, "password1")

        assert await store.is_token_live(pair.access_id)
        assert await store.redis.pttl(f"token:{pair.access_id}") > 0

        rotated = await engine.refresh_token(pair.access_token, pair.refresh_token)
        assert not await store.is_token_live(pair.access_id)
        assert not await store.is_token_live(pair.refresh_id)

        with pytest.raises(TokenRevokedError):
            await engine.refresh_token(pair.access_token, pair.refresh_token)

        result = await engine.revoke_token(rotated.access_token)
        assert set(result.revoked_ids) == set(rotated.ids)
        assert not await store.is_token_live(rotated.refresh_id)

    async def test_concurrent_signup(self, engine, email):
        results = await asyncio.gather(
            *(engine.sign_up(email, "password1") for _ in range(5)),
            return_exceptions=True,
        )

        assert sum(r == email for r in results) == 1
        assert all(isinstance(r, UserAlreadyExistsError) for r in results if r != email)

    async def test_concurrent_refresh(self, engine, email):
        await engine.sign_up(email, "password1")
        pair = await engine.sign_in(email, "password1")

        results = await asyncio.gather(
            *(engine.refresh_token(pair.access_token, pair.refresh_token) for _ in range(5)),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        assert all(isinstance(r, TokenRevokedError) for r in results if isinstance(r, Exception))
