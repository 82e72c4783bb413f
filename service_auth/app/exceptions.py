"""
Typed failures raised by the auth service core.

Every class maps to exactly one HTTP status through ``status_code`` so the
transport layer never has to inspect messages.
"""

from typing import Any, Dict, Optional, Sequence

from shared.errors import (
    AccessLayerException,
    AuthenticationError,
    ConflictError,
    ServiceError,
    ValidationError,
)

__all__ = [
    "ValidationError",
    "UserAlreadyExistsError",
    "UnauthorizedError",
    "UserNotFoundError",
    "PasswordMismatchError",
    "InvalidTokenError",
    "TokenRevokedError",
    "StoreError",
    "PartialDeleteError",
    "TokenCodecError",
    "SignatureInvalidError",
    "InvalidTokenClassError",
]


class UserAlreadyExistsError(ConflictError):
    """An identity record already exists for the normalised email."""

    def __init__(self, email: str):
        super().__init__("User already exists", details={"email": email})
        self.code = "USER_ALREADY_EXISTS"


class UnauthorizedError(AuthenticationError):
    """Credentials were rejected.

    Subclasses record *why* for logs and tests; the public message is
    always the same so callers cannot probe which accounts exist.
    """

    public_message = "Invalid email or password"

    def __init__(self, reason: str):
        super().__init__(self.public_message)
        self.code = "UNAUTHORIZED"
        self.reason = reason


class UserNotFoundError(UnauthorizedError):
    def __init__(self):
        super().__init__("user not found")


class PasswordMismatchError(UnauthorizedError):
    def __init__(self):
        super().__init__("password does not match")


class InvalidTokenError(AuthenticationError):
    """A presented token failed verification."""

    def __init__(self, message: str = "Invalid token", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.code = "INVALID_TOKEN"


class TokenRevokedError(AuthenticationError):
    """The token's registry entry is gone (revoked, rotated or expired)."""

    def __init__(self, message: str = "Token is revoked"):
        super().__init__(message)
        self.code = "TOKEN_REVOKED"


class StoreError(ServiceError):
    """The credential store failed or timed out."""

    def __init__(self, message: str = "Credential store error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.code = "STORE_ERROR"


class PartialDeleteError(StoreError):
    """Fewer registry entries were deleted than requested."""

    def __init__(self, requested: Sequence[str], deleted: int):
        self.requested = tuple(requested)
        self.deleted = deleted
        super().__init__(
            "Token registry delete was partial",
            details={"requested": len(self.requested), "deleted": deleted},
        )
        self.code = "PARTIAL_DELETE"


class TokenCodecError(AccessLayerException):
    """Base class for token codec failures."""

    status_code = 401


class SignatureInvalidError(TokenCodecError):
    """Bad signature, malformed token, or expired token."""

    def __init__(self, message: str = "Token signature is invalid"):
        super().__init__("SIGNATURE_INVALID", message)


class InvalidTokenClassError(TokenCodecError):
    """Verification was requested for something that is not a TokenClass."""

    status_code = 500

    def __init__(self, token_class: Any):
        super().__init__(
            "INVALID_TOKEN_CLASS",
            "Invalid token class",
            details={"token_class": repr(token_class)},
        )
