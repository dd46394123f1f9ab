"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.config import Settings, get_settings
from src.cycles.engine import CycleEngine


@dataclass(frozen=True)
class AuthContext:
    """Authenticated user context extracted from Clerk JWT."""

    user_id: str  # Clerk user ID (e.g. "user_2x...")
    lunax_user_id: uuid.UUID | None = None  # Our internal UUID, set as a custom claim
    email: str | None = None
    session_id: str | None = None


async def get_current_user(request: Request) -> AuthContext:
    """Extract the authenticated user from the request state.

    The Clerk auth middleware sets ``request.state.auth`` before routes run.
    Users without a provisioned Lunax ID cannot reach cycle data.
    """
    auth: AuthContext | None = getattr(request.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if auth.lunax_user_id is None:
        raise HTTPException(status_code=403, detail="User not provisioned")
    return auth


def get_cycle_engine(request: Request) -> CycleEngine:
    """Return the process-wide engine created in the app lifespan."""
    return request.app.state.cycle_engine


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
Engine = Annotated[CycleEngine, Depends(get_cycle_engine)]
AppSettings = Annotated[Settings, Depends(get_settings)]
