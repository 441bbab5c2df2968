"""Rolling nutrient totals over recent records."""

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Protocol

from label_scanner.domain.nutrition import NutrientTotals, NutritionalInfo

HISTORY_LIMIT = 20


class HistoryRepository(Protocol):
    """Read interface for recent nutrient records."""

    def get_recent(self, limit: int) -> list[NutritionalInfo]:
        """Return the newest records ordered by creation time descending."""


@dataclass(frozen=True)
class HistorySummary:
    """Recent records with day and week totals."""

    items: list[NutritionalInfo]
    day_total: NutrientTotals
    week_total: NutrientTotals


def start_of_day(now: datetime) -> datetime:
    """Return midnight of ``now`` in its own time zone."""
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: datetime, first_weekday: int = calendar.SUNDAY) -> datetime:
    """Return midnight of the most recent ``first_weekday`` on or before now."""
    days_back = (now.weekday() - first_weekday) % 7
    return start_of_day(now - timedelta(days=days_back))


def aggregate(
    now: datetime,
    records: list[NutritionalInfo],
    first_weekday: int = calendar.SUNDAY,
) -> tuple[NutrientTotals, NutrientTotals]:
    """Sum primary macros for today and for this week.

    A record only reaches the day total if it already counted for the week.
    """
    day_start = start_of_day(now)
    week_start = start_of_week(now, first_weekday)
    day_total = NutrientTotals()
    week_total = NutrientTotals()
    for record in records:
        created_at = _align(record.created_at, now)
        if created_at >= week_start:
            week_total = week_total.add(record)
            if created_at >= day_start:
                day_total = day_total.add(record)
    return day_total, week_total


def _align(value: datetime, now: datetime) -> datetime:
    if value.tzinfo is None and now.tzinfo is not None:
        return value.replace(tzinfo=now.tzinfo)
    if value.tzinfo is not None and now.tzinfo is None:
        return value.astimezone().replace(tzinfo=None)
    return value


@dataclass
class HistoryService:
    """Loads recent records and summarizes them in the server's time zone."""

    repository: HistoryRepository
    timezone: tzinfo | None = None
    limit: int = HISTORY_LIMIT
    first_weekday: int = calendar.SUNDAY

    def get_history(self, now: datetime | None = None) -> HistorySummary:
        """Return the most recent records with day and week totals."""
        current = now or datetime.now().astimezone(self.timezone)
        items = self.repository.get_recent(self.limit)
        day_total, week_total = aggregate(current, items, self.first_weekday)
        return HistorySummary(items=items, day_total=day_total, week_total=week_total)
