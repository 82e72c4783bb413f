"""
Password hashing for the auth service.
"""

import asyncio
import secrets

from passlib.context import CryptContext

from shared.config import BaseConfig
from shared.logging import get_logger


class PasswordHasher:
    """Slow, salted one-way password hashing (argon2).

    Hashing is CPU bound, so the async helpers run it in a worker thread to
    keep the event loop responsive.
    """

    def __init__(self, time_cost: int = 2, memory_cost: int = 65536, parallelism: int = 4):
        self.logger = get_logger("auth.passwords")
        self._context = CryptContext(
            schemes=["argon2"],
            deprecated="auto",
            argon2__time_cost=time_cost,
            argon2__memory_cost=memory_cost,
            argon2__parallelism=parallelism,
        )
        # Same cost as real hashes; verified against when the account does not exist
        self.dummy_hash = self.hash(secrets.token_urlsafe(16))

    @classmethod
    def from_config(cls, config: BaseConfig) -> "PasswordHasher":
        return cls(
            time_cost=config.password_hash_time_cost,
            memory_cost=config.password_hash_memory_cost,
            parallelism=config.password_hash_parallelism,
        )

    def hash(self, password: str) -> bytes:
        return self._context.hash(password).encode("utf-8")

    def verify(self, password: str, password_hash: bytes) -> bool:
        try:
            return self._context.verify(password, password_hash.decode("utf-8"))
        except (ValueError, TypeError) as e:
            # An unreadable stored hash can never match
            self.logger.warning("Stored password hash is unreadable", error=str(e))
            return False

    async def hash_async(self, password: str) -> bytes:
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, password: str, password_hash: bytes) -> bool:
        return await asyncio.to_thread(self.verify, password, password_hash)
