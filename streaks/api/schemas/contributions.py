from datetime import date
from datetime import datetime

from pydantic import BaseModel

from streaks.domain.contributions import ContributionDay
from streaks.domain.contributions import ContributionLevel
from streaks.domain.contributions import ContributionsSnapshot
from streaks.domain.contributions import sunday_offset


class ContributionDayItem(BaseModel):
    """Single day item used in contribution responses."""

    date: date
    weekday: int
    count: int
    level: int


class ContributionWeekItem(BaseModel):
    """Week bucket containing ordered daily contribution items."""

    week_start: date
    days: list[ContributionDayItem]


class ContributionsResponse(BaseModel):
    """Full-year contributions payload with streak statistics.

    `stale` is set when the snapshot is last-known data returned next to
    `error` because a refresh failed.
    """

    username: str
    total_contributions: int
    contributions_text: str
    fetched_at: datetime
    estimated_counts: bool
    source: str
    current_streak: int
    longest_streak: int
    stale: bool = False
    error: str | None = None
    weeks: list[ContributionWeekItem]


class RecentContributionsResponse(BaseModel):
    """Compact window of recent days for small displays."""

    username: str
    current_streak: int
    days: list[ContributionDayItem]
    latest: list[ContributionDayItem]


class ContributionsStateResponse(BaseModel):
    """Outcome of loading contributions for the configured username."""

    state: str
    error: str | None = None
    contributions: ContributionsResponse | None = None


def day_item(day: ContributionDay, level: ContributionLevel) -> ContributionDayItem:
    return ContributionDayItem(
        date=day.date,
        weekday=sunday_offset(day.date),
        count=day.count,
        level=int(level),
    )


def build_contributions_response(
    snapshot: ContributionsSnapshot,
    today: date | None = None,
    error: str | None = None,
) -> ContributionsResponse:
    weeks = [
        ContributionWeekItem(
            week_start=week.week_start,
            days=[day_item(day, snapshot.relative_level(day)) for day in week.days],
        )
        for week in snapshot.weeks
    ]
    return ContributionsResponse(
        username=snapshot.username,
        total_contributions=snapshot.total_contributions,
        contributions_text=snapshot.contributions_text,
        fetched_at=snapshot.fetched_at,
        estimated_counts=snapshot.estimated_counts,
        source=snapshot.source,
        current_streak=snapshot.current_streak(today=today),
        longest_streak=snapshot.longest_streak,
        stale=error is not None,
        error=error,
        weeks=weeks,
    )


def build_recent_response(
    snapshot: ContributionsSnapshot,
    days_count: int,
    latest_count: int,
    today: date | None = None,
) -> RecentContributionsResponse:
    return RecentContributionsResponse(
        username=snapshot.username,
        current_streak=snapshot.current_streak(today=today),
        days=[
            day_item(day, day.level)
            for day in snapshot.recent_days(days_count, today=today)
        ],
        latest=[day_item(day, day.level) for day in snapshot.latest_days(latest_count)],
    )
