from __future__ import annotations

from datetime import date as dt_date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NormCreate(BaseModel):
    name: str


class NormPatch(BaseModel):
    is_active: bool


class NormOrderPayload(BaseModel):
    ordered_ids: List[str]


class NormResponse(BaseModel):
    id: str
    user_id: str
    norm_name: str
    is_active: bool
    is_default: bool
    display_order: int
    created_at: Optional[str] = None


class ToggleCompletionPayload(BaseModel):
    norm_name: str
    date: dt_date


class DailyItem(BaseModel):
    norm_id: str
    name: str
    checked: bool


class DayViewResponse(BaseModel):
    date: str
    items: List[DailyItem]


class WeekDay(BaseModel):
    date: str
    completed_count: int
    ratio: float


class WeekViewResponse(BaseModel):
    start_date: str
    active_norms: int
    days: List[WeekDay]


class NormCompletion(BaseModel):
    name: str
    completed: bool


class CompletionDay(BaseModel):
    date: str
    norms: List[NormCompletion] = Field(default_factory=list)


class SuggestionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completion_data: List[CompletionDay] = Field(..., alias="completionData")


class SuggestionStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall_rate: str = Field(..., alias="overallRate")
    weakest_norms: str = Field(..., alias="weakestNorms")


class SuggestionResponse(BaseModel):
    suggestion: str
    stats: SuggestionStats
