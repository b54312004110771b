from __future__ import annotations

from datetime import date, timedelta

from plan_of_life import repositories
from plan_of_life.errors import ValidationError

WEEK_LENGTH = 7


def week_start_for(day: date, first_weekday: int = 6) -> date:
    """Return the first day of the week containing ``day``.

    ``first_weekday`` uses Python's numbering (Monday is 0, Sunday is 6).
    """
    offset = (day.weekday() - first_weekday) % WEEK_LENGTH
    return day - timedelta(days=offset)


async def build_daily_view(user_id: str, day: date) -> list[dict]:
    norms = await repositories.list_norms(user_id, active_only=True)
    completed = {name for _, name in await repositories.list_completions_in_range(user_id, day, day)}
    return [
        {
            "norm_id": norm["id"],
            "name": norm["norm_name"],
            "checked": norm["norm_name"] in completed,
        }
        for norm in norms
    ]


async def build_week_view(user_id: str, week_start: date) -> dict:
    """Per-day completion counts for the 7 days starting at ``week_start``.

    Ratios are normalised against the active norm count. A user with no
    active norms gets a divisor of 1, so the ratio is defined but carries no
    meaning as a percentage. Completions of norms that are no longer active
    still count, which can push a ratio above 1.
    """
    total = await repositories.count_active_norms(user_id)
    divisor = total or 1
    week_end = week_start + timedelta(days=WEEK_LENGTH - 1)
    counts = await repositories.count_by_date(user_id, week_start, week_end)
    days = []
    for offset in range(WEEK_LENGTH):
        current = week_start + timedelta(days=offset)
        completed_count = counts.get(current, 0)
        days.append(
            {
                "date": current.isoformat(),
                "completed_count": completed_count,
                "ratio": completed_count / divisor,
            }
        )
    return {
        "start_date": week_start.isoformat(),
        "active_norms": total,
        "days": days,
    }


def parse_day(value: str) -> date:
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError("Invalid date format") from exc
