import logging
from collections.abc import Callable
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

import httpx

from streaks.clients.github_client import fetch_authenticated_user
from streaks.clients.github_client import fetch_contribution_calendar
from streaks.clients.github_client import fetch_contributions_page
from streaks.domain.contributions import ContributionsSnapshot
from streaks.parsing.contribution_calendar import parse_contribution_calendar
from streaks.parsing.contributions_page import ParsedContributions
from streaks.parsing.contributions_page import parse_contributions_page
from streaks.services.errors import ContributionsError
from streaks.services.errors import InvalidTokenError
from streaks.services.errors import InvalidUsernameError
from streaks.services.errors import NetworkError
from streaks.services.errors import ParseError
from streaks.services.errors import RateLimitedError
from streaks.services.errors import UserNotFoundError
from streaks.services.snapshot_cache import SnapshotCache
from streaks.services.snapshot_cache import utc_now
from streaks.settings import Settings

logger = logging.getLogger(__name__)


class DisplayState(str, Enum):
    SETUP = "setup"
    READY = "ready"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class ContributionsView:
    """What a caller should show after a load attempt."""

    state: DisplayState
    snapshot: ContributionsSnapshot | None = None
    error: ContributionsError | None = None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None


def normalize_username(raw_username: str) -> str:
    return raw_username.strip().lower()


def error_for_status(status_code: int) -> ContributionsError:
    """Translate a GitHub HTTP status into the matching error."""

    if status_code in {401, 403}:
        return InvalidTokenError()
    if status_code == 404:
        return UserNotFoundError()
    if status_code == 429:
        return RateLimitedError()
    return ParseError(f"Unexpected GitHub response status {status_code}")


@contextmanager
def github_errors() -> Iterator[None]:
    """Re-raise httpx and payload errors as contribution errors."""

    try:
        yield
    except httpx.HTTPStatusError as exc:
        raise error_for_status(exc.response.status_code) from exc
    except httpx.RequestError as exc:
        raise NetworkError(f"Network error: {exc}") from exc
    except ValueError as exc:
        raise ParseError() from exc


class ContributionsService:
    """Fetches contribution snapshots, going to the network only when needed."""

    def __init__(
        self,
        cache: SnapshotCache,
        settings: Settings | None = None,
        fetch_page: Callable[..., httpx.Response] = fetch_contributions_page,
        fetch_user: Callable[..., dict[str, str | int]] = fetch_authenticated_user,
        fetch_calendar: Callable[..., Any] = fetch_contribution_calendar,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._cache = cache
        self._settings = settings or Settings()
        self._fetch_page = fetch_page
        self._fetch_user = fetch_user
        self._fetch_calendar = fetch_calendar
        self._clock = clock

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    def fetch(self, username: str, force_refresh: bool = False) -> ContributionsSnapshot:
        """Return a snapshot from the cache or the public contributions page.

        Raises:
            ContributionsError: On any failure. `stale_snapshot` is set when an
                earlier snapshot for the user is still stored.
        """

        username = normalize_username(username)
        if not username:
            raise InvalidUsernameError()

        logger.info(
            "Starting contribution fetch for %s, force_refresh=%s",
            username,
            force_refresh,
        )
        if not force_refresh:
            cached = self._cache.get(username)
            if cached is not None:
                logger.info("Using cached contributions for %s", username)
                return cached

        try:
            parsed = self._download_page(username)
        except ContributionsError as exc:
            self._attach_stale_snapshot(username, exc)
            raise

        return self._store_snapshot(username, parsed, source="page")

    def fetch_authenticated(
        self, token: str, force_refresh: bool = False
    ) -> ContributionsSnapshot:
        """Return a snapshot for the token owner using the GraphQL API."""

        token = token.strip()
        if not token:
            raise InvalidTokenError()

        timeout = self._settings.request_timeout_seconds
        with github_errors():
            github_user = self._fetch_user(
                token, api_url=self._settings.github_api_url, timeout=timeout
            )

        raw_login = github_user.get("login")
        if not isinstance(raw_login, str) or not normalize_username(raw_login):
            raise ParseError("GitHub user response is invalid")
        username = normalize_username(raw_login)

        if not force_refresh:
            cached = self._cache.get(username)
            if cached is not None:
                logger.info("Using cached contributions for %s", username)
                return cached

        try:
            with github_errors():
                payload = self._fetch_calendar(
                    username,
                    token=token,
                    graphql_url=self._settings.github_graphql_url,
                    timeout=timeout,
                )
            parsed = parse_contribution_calendar(payload)
        except ContributionsError as exc:
            self._attach_stale_snapshot(username, exc)
            raise

        return self._store_snapshot(username, parsed, source="graphql")

    def load(self, username: str, force_refresh: bool = False) -> ContributionsView:
        """Fetch and classify the outcome for display."""

        if not normalize_username(username):
            return ContributionsView(state=DisplayState.SETUP)

        try:
            snapshot = self.fetch(username, force_refresh=force_refresh)
        except ContributionsError as exc:
            if exc.stale_snapshot is not None:
                return ContributionsView(
                    state=DisplayState.DEGRADED,
                    snapshot=exc.stale_snapshot,
                    error=exc,
                )
            return ContributionsView(state=DisplayState.FAILED, error=exc)

        return ContributionsView(state=DisplayState.READY, snapshot=snapshot)

    def _download_page(self, username: str) -> ParsedContributions:
        logger.info("Fetching fresh contributions from GitHub for %s", username)
        try:
            response = self._fetch_page(
                username,
                base_url=self._settings.contributions_base_url,
                timeout=self._settings.request_timeout_seconds,
            )
        except httpx.RequestError as exc:
            raise NetworkError(f"Network error: {exc}") from exc

        if response.status_code == 404:
            raise UserNotFoundError()
        if response.status_code == 429:
            raise RateLimitedError()
        if response.status_code != 200:
            raise ParseError(
                f"Unexpected GitHub response status {response.status_code}"
            )

        try:
            document = response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError("Contributions page is not text") from exc

        return parse_contributions_page(document)

    def _store_snapshot(
        self, username: str, parsed: ParsedContributions, source: str
    ) -> ContributionsSnapshot:
        snapshot = ContributionsSnapshot(
            username=username,
            total_contributions=parsed.total,
            days=parsed.days,
            fetched_at=self._clock(),
            estimated_counts=parsed.estimated,
            source=source,
        )
        self._cache.put(snapshot)
        logger.info(
            "Fetched %s contributions for %s, current streak: %s",
            snapshot.total_contributions,
            username,
            snapshot.current_streak(today=snapshot.fetched_at.date()),
        )
        return snapshot

    def _attach_stale_snapshot(self, username: str, exc: ContributionsError) -> None:
        exc.stale_snapshot = self._cache.get_last_known(username)
        if exc.stale_snapshot is not None:
            logger.warning(
                "Contribution fetch for %s failed (%s); falling back to cached data",
                username,
                exc,
            )
        else:
            logger.warning("Contribution fetch for %s failed: %s", username, exc)
