"""Contribution history model and the statistics derived from it.

Everything here is pure: functions take the observed days (and, where the
result depends on the calendar, an explicit ``today``/``now``) and never touch
storage or the network. Dates are calendar dates in UTC.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC
from datetime import date
from datetime import datetime
from datetime import timedelta
from enum import IntEnum
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator

CACHE_TTL = timedelta(minutes=30)


class ContributionLevel(IntEnum):
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    VERY_HIGH = 4

    @classmethod
    def from_count(cls, count: int) -> "ContributionLevel":
        """Map a daily count to a level using fixed thresholds."""

        if count <= 0:
            return cls.NONE
        if count <= 2:
            return cls.LOW
        if count <= 5:
            return cls.MEDIUM
        if count <= 8:
            return cls.HIGH
        return cls.VERY_HIGH

    @classmethod
    def relative(cls, count: int, max_count: int) -> "ContributionLevel":
        """Map a daily count to a level scaled by the busiest day in the window."""

        if count <= 0 or max_count <= 0:
            return cls.NONE

        # Quartile upper bounds are inclusive: 25% of the max is still LOW.
        ratio = count / max_count
        if ratio <= 0.25:
            return cls.LOW
        if ratio <= 0.5:
            return cls.MEDIUM
        if ratio <= 0.75:
            return cls.HIGH
        return cls.VERY_HIGH


class ContributionDay(BaseModel):
    """Contribution count observed for one calendar date."""

    model_config = ConfigDict(frozen=True)

    date: date
    count: int = Field(ge=0)

    @property
    def level(self) -> ContributionLevel:
        return ContributionLevel.from_count(self.count)


@dataclass(frozen=True)
class ContributionWeek:
    """Days of one Sunday-to-Saturday week in ascending order."""

    days: tuple[ContributionDay, ...]

    @property
    def week_start(self) -> date:
        first = self.days[0].date
        return first - timedelta(days=sunday_offset(first))


def utc_today() -> date:
    return datetime.now(UTC).date()


def sunday_offset(day: date) -> int:
    """Return the number of days since the Sunday that starts ``day``'s week."""

    return (day.weekday() + 1) % 7


def build_weeks(days: Iterable[ContributionDay]) -> list[ContributionWeek]:
    """Group days into week buckets, opening a new bucket on every Sunday."""

    weeks: list[ContributionWeek] = []
    current: list[ContributionDay] = []

    for day in sorted(days, key=lambda item: item.date):
        if sunday_offset(day.date) == 0 and current:
            weeks.append(ContributionWeek(days=tuple(current)))
            current = []
        current.append(day)

    if current:
        weeks.append(ContributionWeek(days=tuple(current)))

    return weeks


def current_streak(days: Iterable[ContributionDay], today: date | None = None) -> int:
    """Count consecutive active days ending today.

    A day with zero contributions today does not break the streak yet; the
    walk starts from yesterday instead. A missing day is treated as a gap.
    """

    today = today or utc_today()
    ordered = sorted(days, key=lambda item: item.date, reverse=True)

    expected = today
    for day in ordered:
        if day.date == today:
            if day.count == 0:
                expected = today - timedelta(days=1)
            break

    streak = 0
    for day in ordered:
        if day.date == expected:
            if day.count <= 0:
                break
            streak += 1
            expected -= timedelta(days=1)
        elif day.date < expected:
            break

    return streak


def longest_streak(days: Iterable[ContributionDay]) -> int:
    """Return the longest run of consecutive days with contributions."""

    longest = 0
    current = 0
    previous: date | None = None

    for day in sorted(days, key=lambda item: item.date):
        if day.count > 0:
            if previous is not None and (day.date - previous).days == 1:
                current += 1
            else:
                current = 1
            longest = max(longest, current)
            previous = day.date
        else:
            current = 0
            previous = None

    return longest


class ContributionsSnapshot(BaseModel):
    """Fetched-and-parsed contribution history for one user."""

    model_config = ConfigDict(frozen=True)

    username: str
    total_contributions: int = Field(ge=0)
    days: tuple[ContributionDay, ...]
    fetched_at: datetime
    estimated_counts: bool = False
    source: Literal["page", "graphql"] = "page"

    @field_validator("fetched_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @model_validator(mode="after")
    def _ensure_unique_dates(self) -> "ContributionsSnapshot":
        seen: set[date] = set()
        for day in self.days:
            if day.date in seen:
                raise ValueError(f"duplicate contribution day {day.date.isoformat()}")
            seen.add(day.date)
        return self

    @property
    def weeks(self) -> list[ContributionWeek]:
        return build_weeks(self.days)

    @property
    def max_count(self) -> int:
        return max((day.count for day in self.days), default=0)

    @property
    def longest_streak(self) -> int:
        return longest_streak(self.days)

    @property
    def contributions_text(self) -> str:
        return f"{self.total_contributions:,} contributions in the last year"

    def current_streak(self, today: date | None = None) -> int:
        return current_streak(self.days, today=today)

    def relative_level(self, day: ContributionDay) -> ContributionLevel:
        return ContributionLevel.relative(day.count, self.max_count)

    def is_cache_valid(
        self, now: datetime | None = None, ttl: timedelta = CACHE_TTL
    ) -> bool:
        now = now or datetime.now(UTC)
        return now - self.fetched_at < ttl

    def recent_days(
        self, days_count: int, today: date | None = None
    ) -> list[ContributionDay]:
        """Return the last ``days_count`` calendar days up to ``today``, oldest first."""

        today = today or utc_today()
        cutoff = today - timedelta(days=days_count - 1)
        return sorted(
            (day for day in self.days if day.date >= cutoff),
            key=lambda item: item.date,
        )

    def latest_days(self, count: int) -> list[ContributionDay]:
        """Return the ``count`` most recent days, newest first."""

        if count <= 0:
            return []
        ordered = sorted(self.days, key=lambda item: item.date, reverse=True)
        return ordered[:count]
