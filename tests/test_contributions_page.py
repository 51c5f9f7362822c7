from datetime import date
from datetime import timedelta

import pytest

from conftest import load_fixture
from streaks.parsing.contributions_page import LEVEL_COUNT_ESTIMATES
from streaks.parsing.contributions_page import build_cell_date_map
from streaks.parsing.contributions_page import extract_total_contributions
from streaks.parsing.contributions_page import parse_contributions_page
from streaks.services.errors import ParseError


EXPECTED_FIXTURE_COUNTS = {
    date(2024, 1, 7): 0,
    date(2024, 1, 8): 3,
    date(2024, 1, 9): 1,
    date(2024, 1, 10): 0,
    date(2024, 1, 11): 12,
    date(2024, 1, 12): 5,
    date(2024, 1, 13): 2,
    date(2024, 1, 14): 0,
    date(2024, 1, 15): 1,
    date(2024, 1, 16): 7,
}


def build_document(start: date, counts: list[int]) -> str:
    """Render a minimal calendar with one tooltip per cell."""

    cells: list[str] = []
    tooltips: list[str] = []
    for offset, count in enumerate(counts):
        cell_id = f"contribution-day-component-{offset % 7}-{offset // 7}"
        cell_date = (start + timedelta(days=offset)).isoformat()
        cells.append(
            f'<td data-date="{cell_date}" id="{cell_id}" data-level="0" '
            'class="ContributionCalendar-day"></td>'
        )
        if count == 0:
            text = f"No contributions on day {offset}."
        elif count == 1:
            text = f"1 contribution on day {offset}."
        else:
            text = f"{count} contributions on day {offset}."
        tooltips.append(f'<tool-tip for="{cell_id}" class="sr-only">{text}</tool-tip>')
    return "<table><tr>" + "".join(cells) + "</tr></table>" + "".join(tooltips)


def test_parse_fixture_joins_tooltips_onto_cell_dates() -> None:
    parsed = parse_contributions_page(load_fixture("contributions_page.html"))

    assert {day.date: day.count for day in parsed.days} == EXPECTED_FIXTURE_COUNTS
    assert parsed.estimated is False


def test_parse_fixture_days_are_sorted_and_unique() -> None:
    parsed = parse_contributions_page(load_fixture("contributions_page.html"))

    dates = [day.date for day in parsed.days]
    assert dates == sorted(dates)
    assert len(dates) == len(set(dates))


def test_explicit_total_overrides_sum_of_days() -> None:
    parsed = parse_contributions_page(load_fixture("contributions_page.html"))

    assert sum(day.count for day in parsed.days) == 31
    assert parsed.explicit_total == 1136
    assert parsed.total == 1136


def test_total_falls_back_to_sum_without_total_phrase() -> None:
    parsed = parse_contributions_page(load_fixture("contributions_page_no_total.html"))

    assert parsed.explicit_total is None
    assert parsed.total == 31


@pytest.mark.parametrize(
    "counts",
    [
        [1],
        [0, 0, 4],
        [3, 1, 0, 12, 7, 7, 2, 9],
        [25, 0, 1, 1, 0, 0, 0, 0, 0, 3, 44, 1, 2, 5, 8],
    ],
)
def test_total_equals_sum_of_parsed_counts(counts: list[int]) -> None:
    parsed = parse_contributions_page(build_document(date(2024, 2, 1), counts))

    assert [day.count for day in parsed.days] == counts
    assert parsed.total == sum(counts)


def test_parsing_is_idempotent() -> None:
    document = load_fixture("contributions_page.html")

    first = parse_contributions_page(document)
    second = parse_contributions_page(document)

    assert set(first.days) == set(second.days)


def test_tooltip_for_unknown_cell_is_ignored() -> None:
    parsed = parse_contributions_page(load_fixture("contributions_page.html"))

    assert date(2024, 1, 20) not in {day.date for day in parsed.days}


def test_cell_map_does_not_depend_on_attribute_order() -> None:
    cell_dates = build_cell_date_map(load_fixture("contributions_page.html"))

    assert cell_dates["contribution-day-component-5-0"] == date(2024, 1, 12)
    assert len(cell_dates) == 10


def test_count_tooltip_wins_over_no_contributions_tooltip() -> None:
    document = (
        '<td data-date="2024-05-01" id="contribution-day-component-3-0"></td>'
        '<tool-tip for="contribution-day-component-3-0">No contributions on May 1st.</tool-tip>'
        '<tool-tip for="contribution-day-component-3-0">4 contributions on May 1st.</tool-tip>'
    )

    parsed = parse_contributions_page(document)

    assert [(day.date, day.count) for day in parsed.days] == [(date(2024, 5, 1), 4)]


def test_first_count_tooltip_wins_for_duplicate_cell() -> None:
    document = (
        '<td data-date="2024-05-01" id="cell-a"></td>'
        '<tool-tip for="cell-a">4 contributions on May 1st.</tool-tip>'
        '<tool-tip for="cell-a">9 contributions on May 1st.</tool-tip>'
    )

    parsed = parse_contributions_page(document)

    assert [day.count for day in parsed.days] == [4]


def test_tooltip_counts_accept_thousands_separators() -> None:
    document = (
        '<td data-date="2024-05-02" id="cell-b"></td>'
        '<tool-tip for="cell-b">1,024 contributions on May 2nd.</tool-tip>'
    )

    parsed = parse_contributions_page(document)

    assert parsed.days[0].count == 1024


def test_level_fallback_estimates_counts() -> None:
    parsed = parse_contributions_page(load_fixture("contributions_page_levels_only.html"))

    assert {day.date: day.count for day in parsed.days} == {
        date(2021, 12, 26): 0,
        date(2021, 12, 27): 2,
        date(2021, 12, 28): 5,
        date(2021, 12, 29): 8,
        date(2021, 12, 30): 12,
        date(2021, 12, 31): 2,
    }
    assert parsed.estimated is True
    assert parsed.total == 29


def test_level_fallback_not_used_when_tooltips_exist() -> None:
    parsed = parse_contributions_page(load_fixture("contributions_page.html"))

    # The 2024-01-11 cell has data-level="4" but its tooltip says 12.
    assert parsed.estimated is False
    assert LEVEL_COUNT_ESTIMATES[4] == 12
    assert {day.date: day.count for day in parsed.days}[date(2024, 1, 8)] == 3


@pytest.mark.parametrize("document", ["", "   \n  "])
def test_blank_document_raises_parse_error(document: str) -> None:
    with pytest.raises(ParseError):
        parse_contributions_page(document)


def test_document_without_cells_raises_parse_error() -> None:
    with pytest.raises(ParseError):
        parse_contributions_page("<html><body><h1>Page not found</h1></body></html>")


def test_tooltips_without_cell_map_raise_parse_error() -> None:
    document = '<tool-tip for="cell-x">3 contributions on May 3rd.</tool-tip>'

    with pytest.raises(ParseError):
        parse_contributions_page(document)


def test_extract_total_prefers_last_year_phrase() -> None:
    document = "<p>12 contributions in 2023</p><h2>1,136 contributions in the last year</h2>"

    assert extract_total_contributions(document) == 1136


def test_extract_total_accepts_bare_phrase() -> None:
    assert extract_total_contributions("<h2>412 contributions in 2023</h2>") == 412
    assert extract_total_contributions("<h2>1 contribution</h2>") == 1


def test_extract_total_ignores_daily_tooltips() -> None:
    document = '<tool-tip for="cell-a">5 contributions on May 1st.</tool-tip>'

    assert extract_total_contributions(document) is None
