from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from plan_of_life.auth import require_user_id
from plan_of_life import repositories
from plan_of_life.services.progress_service import build_daily_view, build_week_view, week_start_for
from plan_of_life.settings import get_settings

router = APIRouter()


@router.get("/v1/bootstrap")
async def bootstrap(user_id: str = Depends(require_user_id)):
    settings = get_settings()
    today = date.today()
    await repositories.ensure_seeded(user_id)
    return {
        "user_id": user_id,
        "today": today.isoformat(),
        "checklist": await build_daily_view(user_id, today),
        "week": await build_week_view(user_id, week_start_for(today, settings.week_start_day)),
        "suggestions_enabled": settings.suggestions_configured,
    }
