from __future__ import annotations

from fastapi import APIRouter, Depends

from plan_of_life.auth import require_user_id
from plan_of_life import repositories
from plan_of_life.schemas import WeekViewResponse
from plan_of_life.services.progress_service import build_week_view, parse_day, week_start_for
from plan_of_life.settings import get_settings

router = APIRouter()


@router.get("/v1/week/{day}", response_model=WeekViewResponse)
async def get_week(day: str, user_id: str = Depends(require_user_id)):
    settings = get_settings()
    week_start = week_start_for(parse_day(day), settings.week_start_day)
    await repositories.ensure_seeded(user_id)
    return await build_week_view(user_id, week_start)
