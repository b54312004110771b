from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request

from plan_of_life.auth import require_user_id
from plan_of_life import repositories
from plan_of_life.errors import NoInsightData, ServiceError, ValidationError
from plan_of_life.schemas import SuggestionRequest, SuggestionResponse
from plan_of_life.services.insight_service import get_daily_insight, summarize_completion_window
from plan_of_life.services.progress_service import parse_day
from plan_of_life.services.suggestion_service import SuggestionGenerator
from plan_of_life.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def get_suggestion_generator(request: Request) -> SuggestionGenerator | None:
    generator = getattr(request.app.state, "suggestion_generator", None)
    if generator is not None:
        return generator
    settings = get_settings()
    if not settings.suggestions_configured:
        return None
    generator = SuggestionGenerator.from_settings(settings)
    request.app.state.suggestion_generator = generator
    return generator


@router.get("/v1/insights/{day}")
async def get_insight(
    day: str,
    window_days: int | None = Query(None),
    user_id: str = Depends(require_user_id),
    generator: SuggestionGenerator | None = Depends(get_suggestion_generator),
):
    window = window_days if window_days is not None else get_settings().insight_window_days
    await repositories.ensure_seeded(user_id)
    return await get_daily_insight(user_id, parse_day(day), generator, window)


@router.post("/v1/suggestion", response_model=SuggestionResponse)
async def create_suggestion(
    payload: SuggestionRequest,
    user_id: str = Depends(require_user_id),
    generator: SuggestionGenerator | None = Depends(get_suggestion_generator),
):
    window = [day.model_dump() for day in payload.completion_data]
    try:
        stats = summarize_completion_window(window)
    except NoInsightData as exc:
        raise ValidationError("completionData must contain at least one norm") from exc
    if generator is None:
        raise ServiceError("Suggestion service is not configured", kind="config", status_code=503)
    suggestion = await generator.generate(stats)
    logger.info("Generated suggestion for user %s over %s days", user_id, stats.days)
    return {"suggestion": suggestion, "stats": stats.to_wire()}
