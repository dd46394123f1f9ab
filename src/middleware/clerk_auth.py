"""Clerk JWT verification middleware for FastAPI.

Validates the Bearer token on every non-public request and sets
``request.state.auth`` for ``get_current_user``.  The internal Lunax user
UUID travels as the ``lunax_user_id`` custom claim of the Clerk session
token template.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

import jwt as pyjwt
from fastapi import Request, Response
from jwt import PyJWKClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.config import Settings, get_settings
from src.dependencies import AuthContext

logger = logging.getLogger("lunax.auth")

# Paths that do not require authentication
PUBLIC_PATHS: set[str] = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc")


def _unauthorized(detail: str) -> Response:
    return Response(
        content=f'{{"detail":"{detail}"}}',
        status_code=401,
        media_type="application/json",
    )


def _parse_user_uuid(value: Any) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        logger.warning("Ignoring malformed lunax_user_id claim: %r", value)
        return None


class ClerkAuthMiddleware(BaseHTTPMiddleware):
    """Verify Clerk-issued JWTs and populate request.state.auth."""

    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings or get_settings()
        self._jwks_client = PyJWKClient(
            self._settings.clerk_jwks_url,
            cache_keys=True,
            lifespan=3600,
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if _is_public(request.url.path):
            return await call_next(request)

        # OPTIONS requests pass through (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return _unauthorized("Missing or invalid Authorization header")

        token = auth_header.removeprefix("Bearer ").strip()

        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            payload = pyjwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                options={"verify_aud": False},  # Clerk tokens use azp, not aud
            )
        except pyjwt.ExpiredSignatureError:
            return _unauthorized("Token expired")
        except (pyjwt.InvalidTokenError, pyjwt.PyJWKClientError) as exc:
            logger.warning("JWT validation failed: %s", exc)
            return _unauthorized("Invalid token")

        request.state.auth = AuthContext(
            user_id=payload.get("sub", ""),
            lunax_user_id=_parse_user_uuid(payload.get("lunax_user_id")),
            email=payload.get("email"),
            session_id=payload.get("sid"),
        )

        return await call_next(request)
