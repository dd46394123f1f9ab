"""Dashboard overview: stored cycle stats plus observation logging activity."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from fastapi import APIRouter

from src.dependencies import CurrentUser, Engine
from src.models.cycles import DashboardRead
from src.services.database import fetchrow

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

RECENT_WINDOW_DAYS = 30


@router.get("", response_model=DashboardRead)
async def get_dashboard(user: CurrentUser, engine: Engine) -> Any:
    today = date.today()
    summary = await engine.current_stats(user.lunax_user_id)

    activity = await fetchrow(
        """
        SELECT COUNT(*) FILTER (WHERE observation_date >= $2) AS recent_observations,
               COUNT(DISTINCT observation_date) AS total_observations,
               MAX(observation_date) AS last_observation_date
        FROM period_observations
        WHERE user_id = $1
        """,
        user.lunax_user_id,
        today - timedelta(days=RECENT_WINDOW_DAYS),
        user_id=user.lunax_user_id,
    )

    return DashboardRead.from_parts(
        summary,
        recent_observations=activity["recent_observations"],
        total_observations=activity["total_observations"],
        last_observation_date=activity["last_observation_date"],
        today=today,
    )
