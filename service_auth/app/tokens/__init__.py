"""
Token codec package.

Mints and verifies the service's own signed tokens:

- Access tokens: short lived (15 minutes by default).
- Refresh tokens: long lived (24 hours by default), used only to rotate a pair.

Each class has its own HMAC secret. Secrets are resolved once from
configuration into ``TokenSettings`` and injected into ``TokenCodec``.
"""

from .codec import (
    DEFAULT_ACCESS_SECRET,
    DEFAULT_REFRESH_SECRET,
    TokenCodec,
    TokenSettings,
)

__all__ = [
    "DEFAULT_ACCESS_SECRET",
    "DEFAULT_REFRESH_SECRET",
    "TokenCodec",
    "TokenSettings",
]
