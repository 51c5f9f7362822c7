from collections.abc import Mapping
from datetime import date
from typing import Any

from streaks.domain.contributions import ContributionDay
from streaks.parsing.contributions_page import ParsedContributions
from streaks.services.errors import ParseError
from streaks.services.errors import UserNotFoundError


def parse_contribution_calendar(payload: Any) -> ParsedContributions:
    """Read daily counts from a GraphQL `contributionCalendar` response."""

    if not isinstance(payload, Mapping):
        raise ParseError("GitHub GraphQL response is invalid")

    if payload.get("errors"):
        raise ParseError("GitHub GraphQL returned errors")

    data = payload.get("data")
    if not isinstance(data, Mapping):
        raise ParseError("GitHub GraphQL data is missing")

    user = data.get("user")
    if user is None:
        raise UserNotFoundError()
    if not isinstance(user, Mapping):
        raise ParseError("GitHub user response is invalid")

    collection = user.get("contributionsCollection")
    if not isinstance(collection, Mapping):
        raise ParseError("GitHub contributionsCollection is missing")

    calendar = collection.get("contributionCalendar")
    if not isinstance(calendar, Mapping):
        raise ParseError("GitHub contributionCalendar is missing")

    weeks = calendar.get("weeks")
    if not isinstance(weeks, list):
        raise ParseError("GitHub contribution weeks are missing")

    counts: dict[date, int] = {}
    for week in weeks:
        if not isinstance(week, Mapping):
            continue
        contribution_days = week.get("contributionDays")
        if not isinstance(contribution_days, list):
            continue
        for item in contribution_days:
            if not isinstance(item, Mapping):
                continue
            raw_date = item.get("date")
            raw_count = item.get("contributionCount")
            if not isinstance(raw_date, str) or not isinstance(raw_count, int):
                continue
            if raw_count < 0:
                continue
            try:
                parsed_day = date.fromisoformat(raw_date)
            except ValueError:
                continue
            counts.setdefault(parsed_day, raw_count)

    if not counts:
        raise ParseError("GitHub contribution calendar is empty")

    raw_total = calendar.get("totalContributions")
    explicit_total = (
        raw_total if isinstance(raw_total, int) and raw_total >= 0 else None
    )

    return ParsedContributions(
        days=tuple(
            ContributionDay(date=day, count=count)
            for day, count in sorted(counts.items())
        ),
        explicit_total=explicit_total,
    )
