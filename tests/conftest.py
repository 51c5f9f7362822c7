from datetime import UTC
from datetime import date
from datetime import datetime
from datetime import timedelta
from pathlib import Path

import pytest

from streaks.domain.contributions import ContributionDay
from streaks.domain.contributions import ContributionsSnapshot


FIXTURES_DIR = Path(__file__).parent / "fixtures"


class MemoryKeyValueStore:
    """Dict-backed stand-in for the persistent key-value store."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def make_days(start: date, counts: list[int]) -> tuple[ContributionDay, ...]:
    return tuple(
        ContributionDay(date=start + timedelta(days=offset), count=count)
        for offset, count in enumerate(counts)
    )


def make_snapshot(
    username: str = "octocat",
    counts: list[int] | None = None,
    start: date = date(2024, 1, 7),
    fetched_at: datetime | None = None,
) -> ContributionsSnapshot:
    days = make_days(start, counts if counts is not None else [1, 2, 0, 3])
    return ContributionsSnapshot(
        username=username,
        total_contributions=sum(day.count for day in days),
        days=days,
        fetched_at=fetched_at or datetime(2024, 3, 1, 12, 0, tzinfo=UTC),
    )


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()
