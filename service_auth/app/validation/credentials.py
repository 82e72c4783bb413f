"""
Email and password policy checks.
"""

import re
from typing import Tuple

from ..exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,}$")
MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    """Lower-case and trim an email; the result is the identity key."""
    return (email or "").strip().lower()


def validate_email(email: str) -> str:
    """Return the normalised email or raise ValidationError."""
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("email is required", details={"field": "email"})
    if not EMAIL_PATTERN.match(normalized):
        raise ValidationError("invalid email", details={"field": "email"})
    return normalized


def validate_password(password: str) -> str:
    trimmed = (password or "").strip()
    if not trimmed:
        raise ValidationError("password is required", details={"field": "password"})
    if len(trimmed) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "password is too short",
            details={"field": "password", "min_length": MIN_PASSWORD_LENGTH},
        )
    return password


def validate_credentials(email: str, password: str) -> Tuple[str, str]:
    """Validate a signup/signin request and return ``(normalised_email, password)``."""
    return validate_email(email), validate_password(password)
