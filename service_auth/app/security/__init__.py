"""
Password hashing helpers.
"""

from .passwords import PasswordHasher

__all__ = ["PasswordHasher"]
