"""
Authentication state machine: signup, signin, rotation and revocation.
"""

from typing import Optional

import structlog

from shared.logging import get_logger
from ..exceptions import (
    InvalidTokenError,
    PartialDeleteError,
    PasswordMismatchError,
    SignatureInvalidError,
    TokenRevokedError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from ..models import Claims, RevocationResult, TokenClass, TokenPair
from ..security import PasswordHasher
from ..store import CredentialStore
from ..tokens import TokenCodec
from ..validation import validate_credentials


class AuthEngine:
    """Orchestrates the credential store and token codec.

    The engine keeps no state between calls. All state lives in the store,
    and correctness under concurrency rests on the store's atomic primitives:
    insert-if-absent for identities and a single multi-key delete as the
    serialisation point for rotation.
    """

    def __init__(
        self,
        store: CredentialStore,
        codec: TokenCodec,
        hasher: PasswordHasher,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ):
        self.store = store
        self.codec = codec
        self.hasher = hasher
        self.logger = logger or get_logger("auth.engine")

    async def sign_up(self, email: str, password: str) -> str:
        """Register a new identity and return its normalised email.

        No token is issued; the caller signs in separately.
        """
        email, password = validate_credentials(email, password)

        try:
            await self.store.get_user_by_email(email)
        except UserNotFoundError:
            pass
        else:
            raise UserAlreadyExistsError(email)

        password_hash = await self.hasher.hash_async(password)
        # Insert-if-absent also catches a concurrent signup that passed the lookup
        await self.store.create_user(email, password_hash)

        self.logger.info("User signed up", subject=email)
        return email

    async def sign_in(self, email: str, password: str) -> TokenPair:
        """Authenticate credentials and issue a brand-new token pair."""
        email, password = validate_credentials(email, password)

        try:
            user = await self.store.get_user_by_email(email)
        except UserNotFoundError:
            # Spend the same hashing time as a real mismatch
            await self.hasher.verify_async(password, self.hasher.dummy_hash)
            raise

        if not await self.hasher.verify_async(password, user.password_hash):
            raise PasswordMismatchError()

        pair = self.codec.mint(user.email)
        await self.store.create_token_entries(pair)

        self.logger.info("User signed in", subject=user.email, access_id=pair.access_id)
        return pair

    async def refresh_token(self, access_token: str, refresh_token: str) -> TokenPair:
        """Rotate a live pair into a new one.

        Both tokens must verify on their own. The access token's registry
        entry must still exist; once a pair has been rotated or revoked its
        tokens can never be rotated again even though their signatures stay
        valid until natural expiry.
        """
        access = self._verify(access_token, TokenClass.ACCESS)
        refresh = self._verify(refresh_token, TokenClass.REFRESH)

        if access.subject != refresh.subject:
            raise InvalidTokenError("Token subjects do not match")

        entry = await self.store.get_token_entry(access.token_id)
        if entry is None:
            self.logger.info("Refresh with revoked access token", subject=access.subject, access_id=access.token_id)
            raise TokenRevokedError()
        if entry.subject != access.subject or (entry.pair_id and entry.pair_id != refresh.token_id):
            raise InvalidTokenError("Token pair mismatch")

        try:
            await self.store.delete_token_entries(access.token_id, refresh.token_id)
        except PartialDeleteError:
            # Lost a race with another rotation or a revocation: fail closed
            self.logger.warning("Concurrent rotation rejected", subject=access.subject, access_id=access.token_id)
            raise TokenRevokedError("Token pair was already rotated or revoked")

        pair = self.codec.mint(access.subject)
        await self.store.create_token_entries(pair)

        self.logger.info(
            "Token pair rotated",
            subject=access.subject,
            old_access_id=access.token_id,
            access_id=pair.access_id
        )
        return pair

    async def revoke_token(self, access_token: str) -> RevocationResult:
        """Revoke an access token together with its paired refresh token.

        Revoking a token whose entry is already gone succeeds and reports
        ``already_revoked``.
        """
        access = self._verify(access_token, TokenClass.ACCESS)

        entry = await self.store.get_token_entry(access.token_id)
        if entry is None:
            self.logger.info("Token already revoked", subject=access.subject, access_id=access.token_id)
            return RevocationResult(revoked_ids=(), already_revoked=True)

        token_ids = (access.token_id,) + ((entry.pair_id,) if entry.pair_id else ())
        try:
            await self.store.delete_token_entries(*token_ids)
        except PartialDeleteError as e:
            # Whatever was missing had already expired or been revoked
            self.logger.info("Partial revoke tolerated", subject=access.subject, deleted=e.deleted)
            return RevocationResult(revoked_ids=token_ids, already_revoked=e.deleted == 0)

        self.logger.info("Token revoked", subject=access.subject, access_id=access.token_id)
        return RevocationResult(revoked_ids=token_ids, already_revoked=False)

    async def authenticate(self, access_token: str) -> Claims:
        """Verify an access token and require its registry entry to be live."""
        claims = self._verify(access_token, TokenClass.ACCESS)
        if not await self.store.is_token_live(claims.token_id):
            raise TokenRevokedError()
        return claims

    def _verify(self, token: str, token_class: TokenClass) -> Claims:
        try:
            return self.codec.verify(token, token_class)
        except SignatureInvalidError as e:
            raise InvalidTokenError(
                f"Invalid {token_class.value} token",
                details={"token_class": token_class.value, "reason": e.message}
            ) from e
