"""CRUD endpoints for period observations plus the user's cycle stats.

Every successful create, update or delete recomputes the user's cycle
statistics before responding.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from src.dependencies import CurrentUser, Engine
from src.models.cycles import (
    CycleStatsResponse,
    ObservationCreate,
    ObservationRead,
    ObservationUpdate,
)
from src.services.database import fetch, fetchrow, get_connection

router = APIRouter(prefix="/periods", tags=["periods"])


@router.get("", response_model=list[ObservationRead])
async def list_observations(
    user: CurrentUser,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=365),
) -> Any:
    conditions = ["user_id = $1", "is_period_day = TRUE"]
    params: list[Any] = [user.lunax_user_id]
    idx = 2

    if start_date:
        conditions.append(f"observation_date >= ${idx}")
        params.append(start_date)
        idx += 1
    if end_date:
        conditions.append(f"observation_date <= ${idx}")
        params.append(end_date)
        idx += 1

    where = " AND ".join(conditions)
    rows = await fetch(
        f"SELECT * FROM period_observations WHERE {where} ORDER BY observation_date DESC LIMIT ${idx}",
        *params, limit,
        user_id=user.lunax_user_id,
    )
    return [dict(r) for r in rows]


@router.post("", response_model=ObservationRead, status_code=201)
async def create_observation(
    user: CurrentUser, body: ObservationCreate, engine: Engine
) -> Any:
    row = await fetchrow(
        """
        INSERT INTO period_observations (
            observation_id, user_id, observation_date, is_period_day, flow_level, symptoms, notes
        ) VALUES (gen_random_uuid(), $1, $2, $3, $4, $5, $6)
        ON CONFLICT (user_id, observation_date) DO NOTHING
        RETURNING *
        """,
        user.lunax_user_id,
        body.observation_date, body.is_period_day, body.flow_level.value,
        body.symptoms, body.notes,
        user_id=user.lunax_user_id,
    )
    if not row:
        raise HTTPException(
            status_code=409, detail="An observation already exists for this date"
        )

    await engine.recompute_stats(user.lunax_user_id)
    return dict(row)


@router.get("/stats", response_model=CycleStatsResponse)
async def get_stats(user: CurrentUser, engine: Engine) -> Any:
    summary = await engine.current_stats(user.lunax_user_id)
    return CycleStatsResponse.from_outcome(summary)


@router.patch("/{observation_id}", response_model=ObservationRead)
async def update_observation(
    observation_id: uuid.UUID, user: CurrentUser, body: ObservationUpdate, engine: Engine
) -> Any:
    updates = body.model_dump(exclude_unset=True, mode="json")
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    set_clauses = []
    params: list[Any] = [observation_id, user.lunax_user_id]
    for i, (key, value) in enumerate(updates.items(), start=3):
        set_clauses.append(f"{key} = ${i}")
        params.append(value)
    set_clauses.append("updated_at = NOW()")

    row = await fetchrow(
        f"""
        UPDATE period_observations SET {', '.join(set_clauses)}
        WHERE observation_id = $1 AND user_id = $2
        RETURNING *
        """,
        *params,
        user_id=user.lunax_user_id,
    )
    if not row:
        raise HTTPException(status_code=404, detail="Observation not found")

    await engine.recompute_stats(user.lunax_user_id)
    return dict(row)


@router.delete("/{observation_id}", status_code=204)
async def delete_observation(
    observation_id: uuid.UUID, user: CurrentUser, engine: Engine
) -> None:
    async with get_connection(user_id=user.lunax_user_id) as conn:
        result = await conn.execute(
            "DELETE FROM period_observations WHERE observation_id = $1 AND user_id = $2",
            observation_id, user.lunax_user_id,
        )
        if result == "DELETE 0":
            raise HTTPException(status_code=404, detail="Observation not found")

    await engine.recompute_stats(user.lunax_user_id)
