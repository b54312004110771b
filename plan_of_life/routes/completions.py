from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from plan_of_life.auth import require_user_id
from plan_of_life import repositories
from plan_of_life.schemas import ToggleCompletionPayload
from plan_of_life.services.progress_service import parse_day

router = APIRouter()


@router.post("/v1/completions/toggle")
async def toggle_completion(payload: ToggleCompletionPayload, user_id: str = Depends(require_user_id)):
    completed = await repositories.toggle_completion(user_id, payload.norm_name, payload.date)
    return {"date": payload.date.isoformat(), "norm_name": payload.norm_name, "completed": completed}


@router.get("/v1/completions/{day}/{norm_name}")
async def get_completion(day: str, norm_name: str, user_id: str = Depends(require_user_id)):
    completed = await repositories.is_completed(user_id, norm_name, parse_day(day))
    return {"date": day, "norm_name": norm_name, "completed": completed}


@router.get("/v1/completions")
async def list_completions(
    start: str = Query(...),
    end: str = Query(...),
    user_id: str = Depends(require_user_id),
):
    completions = await repositories.list_completions_in_range(user_id, parse_day(start), parse_day(end))
    items = [
        {"date": completed_date.isoformat(), "norm_name": norm_name}
        for completed_date, norm_name in sorted(completions)
    ]
    return {"items": items}
