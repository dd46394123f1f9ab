"""Next-period forecast, forecast history, and explicit stats recomputation."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from src.dependencies import CurrentUser, Engine
from src.models.cycles import CycleStatsResponse, PredictionRead, PredictionRecordRead
from src.services.database import fetch

router = APIRouter(prefix="/predictions", tags=["predictions"])


@router.get("", response_model=PredictionRead)
async def get_prediction(user: CurrentUser, engine: Engine) -> Any:
    """Forecast the next period from the stored stats and log the forecast."""
    return PredictionRead.model_validate(await engine.predict(user.lunax_user_id))


@router.get("/history", response_model=list[PredictionRecordRead])
async def list_prediction_history(
    user: CurrentUser,
    limit: int = Query(default=30, ge=1, le=365),
) -> Any:
    rows = await fetch(
        """
        SELECT prediction_id, prediction_date, predicted_window_start, predicted_window_end,
               confidence_score, algorithm, created_at
        FROM predictions
        WHERE user_id = $1
        ORDER BY prediction_date DESC, created_at DESC
        LIMIT $2
        """,
        user.lunax_user_id, limit,
        user_id=user.lunax_user_id,
    )
    return [dict(r) for r in rows]


@router.post("/update-stats", response_model=CycleStatsResponse)
async def update_stats(user: CurrentUser, engine: Engine) -> Any:
    """Recompute the user's cycle stats from their current observations."""
    outcome = await engine.recompute_stats(user.lunax_user_id)
    return CycleStatsResponse.from_outcome(outcome)
