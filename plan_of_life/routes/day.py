from __future__ import annotations

from fastapi import APIRouter, Depends

from plan_of_life.auth import require_user_id
from plan_of_life import repositories
from plan_of_life.schemas import DayViewResponse
from plan_of_life.services.progress_service import build_daily_view, parse_day

router = APIRouter()


@router.get("/v1/day/{day}", response_model=DayViewResponse)
async def get_day(day: str, user_id: str = Depends(require_user_id)):
    day_value = parse_day(day)
    await repositories.ensure_seeded(user_id)
    items = await build_daily_view(user_id, day_value)
    return {"date": day_value.isoformat(), "items": items}
