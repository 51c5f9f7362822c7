from collections.abc import Mapping
from datetime import UTC
from datetime import datetime
from datetime import timedelta
from typing import Any
from urllib.parse import quote

import httpx

USER_AGENT = "github-streaks"

CONTRIBUTION_CALENDAR_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
}
"""


def contributions_page_url(username: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/users/{quote(username, safe='')}/contributions"


def fetch_contributions_page(
    username: str,
    base_url: str,
    timeout: float = 15.0,
) -> httpx.Response:
    """Download the public contributions page for a user.

    The response is returned whatever its status; callers decide what a
    non-200 answer means. Transport failures raise `httpx.RequestError`.
    """

    return httpx.get(
        contributions_page_url(username, base_url),
        headers={
            "Accept": "text/html",
            "User-Agent": USER_AGENT,
        },
        timeout=timeout,
        follow_redirects=True,
    )


def fetch_authenticated_user(
    token: str,
    api_url: str,
    timeout: float = 15.0,
) -> dict[str, str | int]:
    """Fetch basic profile data for the token owner from GitHub REST API."""

    response = httpx.get(
        f"{api_url.rstrip('/')}/user",
        headers={
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        },
        timeout=timeout,
    )
    response.raise_for_status()

    payload: Any = response.json()
    if not isinstance(payload, Mapping):
        raise ValueError("GitHub user response is invalid")

    raw_id = payload.get("id")
    raw_login = payload.get("login")
    if not isinstance(raw_id, int) or not isinstance(raw_login, str) or not raw_login:
        raise ValueError("GitHub user response is missing required fields")

    return {"id": raw_id, "login": raw_login}


def fetch_contribution_calendar(
    username: str,
    token: str,
    graphql_url: str,
    timeout: float = 20.0,
) -> Any:
    """Fetch the one-year contribution calendar payload from GitHub GraphQL API."""

    if not token:
        raise ValueError("GITHUB_TOKEN is required for GraphQL requests")

    to_day = datetime.now(UTC).date()
    from_day = to_day - timedelta(days=364)

    variables = {
        "login": username,
        "from": f"{from_day.isoformat()}T00:00:00Z",
        "to": f"{to_day.isoformat()}T23:59:59Z",
    }
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }

    response = httpx.post(
        graphql_url,
        json={"query": CONTRIBUTION_CALENDAR_QUERY, "variables": variables},
        headers=headers,
        timeout=timeout,
    )
    response.raise_for_status()
    return response.json()
