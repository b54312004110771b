from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from plan_of_life import repositories
from plan_of_life.errors import NoInsightData, ServiceError, ValidationError

logger = logging.getLogger(__name__)

WEAKEST_NORMS_LIMIT = 3
MAX_WINDOW_DAYS = 90


def round1(numerator: int, denominator: int) -> float:
    """Percentage ``100 * numerator / denominator`` rounded half-up to one decimal."""
    value = Decimal(numerator) * 100 / Decimal(denominator)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


@dataclass
class NormRate:
    name: str
    rate_percent: float
    completed: int
    total: int

    @property
    def label(self) -> str:
        return f"{self.name} ({self.rate_percent:.1f}%)"


@dataclass
class InsightStats:
    days: int
    total_completed: int
    total_possible: int
    overall_rate_percent: float
    weakest_norms: list[NormRate] = field(default_factory=list)

    @property
    def overall_rate(self) -> str:
        return f"{self.overall_rate_percent:.1f}"

    @property
    def weakest_norms_text(self) -> str:
        return ", ".join(item.label for item in self.weakest_norms)

    def to_payload(self) -> dict:
        return {
            "overall_rate_percent": self.overall_rate_percent,
            "total_completed": self.total_completed,
            "total_possible": self.total_possible,
            "days": self.days,
            "weakest_norms": [
                {"name": item.name, "rate_percent": item.rate_percent}
                for item in self.weakest_norms
            ],
        }

    def to_wire(self) -> dict:
        return {"overallRate": self.overall_rate, "weakestNorms": self.weakest_norms_text}


def _window_dates(end_date: date, window_days: int) -> list[date]:
    if window_days < 1 or window_days > MAX_WINDOW_DAYS:
        raise ValidationError(f"Window must be between 1 and {MAX_WINDOW_DAYS} days")
    return [end_date - timedelta(days=offset) for offset in range(window_days - 1, -1, -1)]


async def build_completion_window(user_id: str, end_date: date, window_days: int = 7) -> list[dict]:
    """Day-by-day completion grid for the trailing window, oldest day first.

    Tracked names are the user's currently active norms in display order.
    """
    dates = _window_dates(end_date, window_days)
    norms = await repositories.list_norms(user_id, active_only=True)
    tracked_names = list(dict.fromkeys(norm["norm_name"] for norm in norms))
    completions = await repositories.list_completions_in_range(user_id, dates[0], dates[-1])
    return [
        {
            "date": day.isoformat(),
            "norms": [
                {"name": name, "completed": (day, name) in completions}
                for name in tracked_names
            ],
        }
        for day in dates
    ]


def summarize_completion_window(window: list[dict]) -> InsightStats:
    total_possible = 0
    total_completed = 0
    per_name: dict[str, list[int]] = {}
    for day in window:
        for norm in day.get("norms") or []:
            name = str(norm.get("name"))
            completed = bool(norm.get("completed"))
            total_possible += 1
            total_completed += int(completed)
            counters = per_name.setdefault(name, [0, 0])
            counters[0] += int(completed)
            counters[1] += 1
    if total_possible == 0:
        raise NoInsightData("No tracked norms in the insight window")

    rates = [
        NormRate(name=name, rate_percent=round1(completed, total), completed=completed, total=total)
        for name, (completed, total) in per_name.items()
    ]
    # sorted() is stable: equal rates keep tracked-name order.
    rates = sorted(rates, key=lambda item: item.rate_percent)
    return InsightStats(
        days=len(window),
        total_completed=total_completed,
        total_possible=total_possible,
        overall_rate_percent=round1(total_completed, total_possible),
        weakest_norms=rates[:WEAKEST_NORMS_LIMIT],
    )


async def compute_insight_stats(user_id: str, end_date: date, window_days: int = 7) -> InsightStats:
    window = await build_completion_window(user_id, end_date, window_days)
    return summarize_completion_window(window)


async def get_daily_insight(user_id: str, day: date, generator=None, window_days: int = 7) -> dict:
    payload = {"date": day.isoformat(), "suggestion": None, "stats": None, "error": None}
    try:
        stats = await compute_insight_stats(user_id, day, window_days)
    except NoInsightData:
        payload["error"] = "no_data"
        return payload
    payload["stats"] = stats.to_payload()
    if generator is None:
        payload["error"] = "not_configured"
        return payload
    try:
        payload["suggestion"] = await generator.generate(stats)
    except ServiceError as exc:
        logger.warning("Suggestion unavailable for user %s (%s): %s", user_id, exc.kind, exc.message)
        payload["error"] = exc.kind
    return payload
