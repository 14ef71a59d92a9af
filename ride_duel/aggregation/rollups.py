"""
Distance rollups for the duel charts.

Pure functions turning a flat list of ActivityRecords into the cumulative
daily series, the monthly totals and the leaderboard total.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from ..api.models import ActivityRecord, DailyTotal, MonthlyTotal, round_km


def daily_distances(activities: Iterable[ActivityRecord]) -> Dict[str, float]:
    """Sum distance per ``YYYY-MM-DD`` day."""
    per_day: Dict[str, float] = defaultdict(float)
    for activity in activities:
        per_day[activity.date] += activity.distance_km
    return dict(per_day)


def series_end(year: int, today: Optional[date] = None) -> date:
    """Last day covered by the cumulative series: today, capped at Dec 31."""
    today = today or date.today()
    return min(today, date(year, 12, 31))


def build_cumulative(activities: Iterable[ActivityRecord], year: int,
                     today: Optional[date] = None) -> List[DailyTotal]:
    """
    Running distance total for every day from Jan 1 up to today (or Dec 31).

    The running total is rounded to 2 decimals, ties up, after each day is
    added, so a long series can drift from the unrounded sum by up to half a
    cent per day.
    A year that has not started yet produces an empty series.
    """
    per_day = daily_distances(activities)
    end = series_end(year, today)

    cumulative = []
    running = 0.0
    day = date(year, 1, 1)
    while day <= end:
        key = day.isoformat()
        running = round_km(running + per_day.get(key, 0.0))
        cumulative.append(DailyTotal(date=key, cumulative_km=running))
        day += timedelta(days=1)

    return cumulative


def build_monthly(activities: Iterable[ActivityRecord]) -> List[MonthlyTotal]:
    """Distance per ``YYYY-MM`` month, ascending; months without rides are omitted."""
    per_month: Dict[str, float] = defaultdict(float)
    for activity in activities:
        per_month[activity.date[:7]] += activity.distance_km

    return [MonthlyTotal(month=month, total_km=round_km(km)) for month, km in sorted(per_month.items())]


def total_km(activities: Iterable[ActivityRecord]) -> float:
    return round_km(sum(activity.distance_km for activity in activities))
