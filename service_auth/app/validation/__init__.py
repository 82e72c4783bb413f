"""
Credential validation package.

Input policy applied before any store access:

- Emails are trimmed and lower-cased; the normalised form is the identity key.
- Passwords must be non-empty and at least 8 characters after trimming.

Violations raise ``ValidationError`` and are never retried.
"""

from .credentials import (
    MIN_PASSWORD_LENGTH,
    normalize_email,
    validate_credentials,
    validate_email,
    validate_password,
)

__all__ = [
    "MIN_PASSWORD_LENGTH",
    "normalize_email",
    "validate_credentials",
    "validate_email",
    "validate_password",
]
