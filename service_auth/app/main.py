"""
Auth service: signup, signin, token refresh and revocation over HTTP.
"""

from typing import Optional

from fastapi import Header

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import AuthenticationError
from .engine import AuthEngine
from .models import (
    CredentialsRequest,
    RefreshRequest,
    RevokeResponse,
    SignUpResponse,
    TokenPairResponse,
)
from .security import PasswordHasher
from .store import CredentialStore
from .tokens import TokenCodec, TokenSettings

SERVICE_NAME = "auth"
DEFAULT_PORT = 8010


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid Authorization header")

    token = authorization[7:].strip()
    if not token:
        raise AuthenticationError("Authorization header contained empty bearer token")
    return token


class AuthService(BaseService):
    """Auth service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        store: Optional[CredentialStore] = None,
        hasher: Optional[PasswordHasher] = None,
    ):
        super().__init__(SERVICE_NAME, DEFAULT_PORT, config=config)

        self.token_settings = TokenSettings.from_config(self.config)
        if self.token_settings.using_default_secrets:
            self.logger.warning(
                "Signing secrets not configured; using insecure development defaults",
                env=self.config.env
            )

        self.store = store or CredentialStore(
            self.config.redis_url,
            timeout_seconds=self.config.store_timeout_seconds
        )
        self.engine = AuthEngine(
            store=self.store,
            codec=TokenCodec(self.token_settings),
            hasher=hasher or PasswordHasher.from_config(self.config),
            logger=self.logger.bind(component="engine"),
        )

        self._setup_auth_routes()

    def _setup_auth_routes(self):
        """Set up auth-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Credential and token lifecycle service",
                "version": "1.0.0"
            }

        @self.app.post("/signup", status_code=201, response_model=SignUpResponse)
        async def sign_up(request: CredentialsRequest):
            """Register a new user."""
            with self.metrics.time_auth_operation("signup"):
                email = await self.engine.sign_up(request.email, request.password)
            return SignUpResponse(email=email)

        @self.app.post("/signin", response_model=TokenPairResponse)
        async def sign_in(request: CredentialsRequest):
            """Authenticate and issue a new token pair."""
            with self.metrics.time_auth_operation("signin"):
                pair = await self.engine.sign_in(request.email, request.password)
            return TokenPairResponse.from_pair(pair)

        @self.app.post("/refresh", response_model=TokenPairResponse)
        async def refresh_token(request: RefreshRequest, authorization: Optional[str] = Header(default=None)):
            """Rotate the presented access/refresh pair."""
            with self.metrics.time_auth_operation("refresh"):
                pair = await self.engine.refresh_token(bearer_token(authorization), request.refresh_token)
            return TokenPairResponse.from_pair(pair)

        @self.app.post("/revoke", response_model=RevokeResponse)
        async def revoke_token(authorization: Optional[str] = Header(default=None)):
            """Revoke the presented access token and its paired refresh token."""
            with self.metrics.time_auth_operation("revoke"):
                result = await self.engine.revoke_token(bearer_token(authorization))
            return RevokeResponse(revoked=True, already_revoked=result.already_revoked)

        @self.app.get("/verify")
        async def verify_token(authorization: Optional[str] = Header(default=None)):
            """Check that an access token is valid and still live."""
            with self.metrics.time_auth_operation("verify"):
                claims = await self.engine.authenticate(bearer_token(authorization))
            return {
                "valid": True,
                "subject": claims.subject,
                "email": claims.email,
                "token_id": claims.token_id,
                "expires_at": int(claims.expires_at.timestamp())
            }

    async def _on_startup(self):
        await self.store.connect()

    async def _on_shutdown(self):
        await self.store.close()

    async def _check_dependencies(self):
        """Check auth dependencies."""
        return {"redis": "ok" if await self.store.ping() else "error"}


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = AuthService(config=config)
    return service.app


if __name__ == "__main__":
    service = AuthService(config=get_config(SERVICE_NAME, DEFAULT_PORT))
    service.run()
