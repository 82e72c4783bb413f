"""
Auth Service package.

This package exposes the FastAPI application that registers users,
authenticates them and manages the lifecycle of their tokens:

- app.main: Application entrypoint that wires routes and lifecycle.
- app.engine: Signup, signin, rotation and revocation state machine.
- app.tokens: Signed token codec (separate access and refresh secrets).
- app.store: Redis-backed identities and token registry.
- app.security: Password hashing.
- app.validation: Email and password policy.

Design notes:
- Keep the package import side-effects minimal; module import must not
  perform network calls. All IO should happen in route handlers or
  explicit startup hooks.
- Use the shared/ utilities for logging, metrics, config, and errors.
- The engine is stateless; the token registry in Redis is the only source
  of truth for whether a token may still be rotated.
"""
