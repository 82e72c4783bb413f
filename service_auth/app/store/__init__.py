"""
Credential store package.

Provides the Redis-backed store holding identity records and the token
registry. The registry is the only source of truth for whether a token
may still be rotated: absence of an entry means revoked.
"""

from .redis_store import CredentialStore

__all__ = ["CredentialStore"]
