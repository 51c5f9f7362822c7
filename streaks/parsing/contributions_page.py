"""Extract daily contribution counts from the public contributions page.

The page is HTML meant for people, not a data feed. A calendar cell carries
the date (`data-date`) and an element id, while the count lives in a separate
tooltip element that points back at the cell through its `for` attribute.
Parsing therefore builds an id -> date map first and joins tooltips onto it.

When no tooltip can be joined, the coarse `data-level` attribute on the cells
is used instead and turned into an approximate count.
"""

import re
from dataclasses import dataclass
from datetime import date

from streaks.domain.contributions import ContributionDay
from streaks.services.errors import ParseError

CELL_TAG_PATTERN = re.compile(r"<[a-zA-Z][^<>]*\bdata-date=\"[^\"]*\"[^<>]*>")
ATTRIBUTE_PATTERN = re.compile(r"([\w:-]+)=\"([^\"]*)\"")
COUNT_TOOLTIP_PATTERN = re.compile(
    r"for=\"([^\"]+)\"[^>]*>\s*(\d[\d,]*)\s+contributions?\s+on", re.IGNORECASE
)
EMPTY_TOOLTIP_PATTERN = re.compile(
    r"for=\"([^\"]+)\"[^>]*>\s*No\s+contributions?\s+on", re.IGNORECASE
)
TOTAL_PATTERNS = (
    re.compile(r"(\d[\d,]*)\s+contributions?\s+in\s+the\s+last\s+year", re.IGNORECASE),
    # Bare totals such as "412 contributions in 2023", never a per-day tooltip.
    re.compile(r"(\d[\d,]*)\s+contributions?\b(?!\s+on\b)", re.IGNORECASE),
)

# Approximate counts for GitHub's 0..4 cell levels.
LEVEL_COUNT_ESTIMATES = {0: 0, 1: 2, 2: 5, 3: 8, 4: 12}


@dataclass(frozen=True)
class ParsedContributions:
    """Days extracted from one document plus the page-level total, if any."""

    days: tuple[ContributionDay, ...]
    explicit_total: int | None = None
    estimated: bool = False

    @property
    def total(self) -> int:
        if self.explicit_total is not None:
            return self.explicit_total
        return sum(day.count for day in self.days)


def _parse_number(raw_value: str) -> int:
    return int(raw_value.replace(",", ""))


def _parse_date(raw_value: str | None) -> date | None:
    if not raw_value:
        return None
    try:
        return date.fromisoformat(raw_value)
    except ValueError:
        return None


def _cell_attributes(document: str) -> list[dict[str, str]]:
    return [
        dict(ATTRIBUTE_PATTERN.findall(match.group(0)))
        for match in CELL_TAG_PATTERN.finditer(document)
    ]


def build_cell_date_map(document: str) -> dict[str, date]:
    """Map calendar cell ids to the dates they render."""

    cell_dates: dict[str, date] = {}
    for attributes in _cell_attributes(document):
        cell_id = attributes.get("id")
        cell_date = _parse_date(attributes.get("data-date"))
        if cell_id and cell_date is not None:
            cell_dates[cell_id] = cell_date
    return cell_dates


def parse_tooltip_counts(document: str, cell_dates: dict[str, date]) -> dict[date, int]:
    """Join tooltip texts onto cell dates.

    Count tooltips are read first; "No contributions" tooltips only fill dates
    that are still missing, so a count is never replaced by zero.
    """

    counts: dict[date, int] = {}

    for match in COUNT_TOOLTIP_PATTERN.finditer(document):
        cell_date = cell_dates.get(match.group(1))
        if cell_date is None or cell_date in counts:
            continue
        counts[cell_date] = _parse_number(match.group(2))

    for match in EMPTY_TOOLTIP_PATTERN.finditer(document):
        cell_date = cell_dates.get(match.group(1))
        if cell_date is None or cell_date in counts:
            continue
        counts[cell_date] = 0

    return counts


def parse_level_estimates(document: str) -> dict[date, int]:
    """Estimate counts from the cells' `data-level` attributes."""

    counts: dict[date, int] = {}
    for attributes in _cell_attributes(document):
        cell_date = _parse_date(attributes.get("data-date"))
        raw_level = attributes.get("data-level")
        if cell_date is None or raw_level is None or not raw_level.isdigit():
            continue
        if cell_date in counts:
            continue
        counts[cell_date] = LEVEL_COUNT_ESTIMATES.get(int(raw_level), 0)
    return counts


def extract_total_contributions(document: str) -> int | None:
    """Return the page-level total, e.g. "1,136 contributions in the last year"."""

    for pattern in TOTAL_PATTERNS:
        match = pattern.search(document)
        if match:
            return _parse_number(match.group(1))
    return None


def parse_contributions_page(document: str) -> ParsedContributions:
    """Parse a contributions page into daily counts.

    Raises:
        ParseError: If the document is blank or no day could be extracted.
    """

    if not document or not document.strip():
        raise ParseError("Contributions page is empty")

    cell_dates = build_cell_date_map(document)
    counts = parse_tooltip_counts(document, cell_dates)

    estimated = False
    if not counts:
        counts = parse_level_estimates(document)
        estimated = bool(counts)

    if not counts:
        raise ParseError()

    days = tuple(
        ContributionDay(date=cell_date, count=count)
        for cell_date, count in sorted(counts.items())
    )
    return ParsedContributions(
        days=days,
        explicit_total=extract_total_contributions(document),
        estimated=estimated,
    )
