import logging
from collections.abc import Callable
from datetime import UTC
from datetime import datetime
from datetime import timedelta

from pydantic import ValidationError

from streaks.domain.contributions import CACHE_TTL
from streaks.domain.contributions import ContributionsSnapshot
from streaks.storage import KeyValueStore

logger = logging.getLogger(__name__)

CONTRIBUTIONS_KEY = "cached_contributions"


def utc_now() -> datetime:
    return datetime.now(UTC)


class SnapshotCache:
    """Keeps the latest snapshot per username with a time-to-live.

    Stored entries that cannot be decoded are treated as misses.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl: timedelta = CACHE_TTL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._clock = clock

    @staticmethod
    def key_for(username: str) -> str:
        return f"{CONTRIBUTIONS_KEY}_{username}"

    def get(self, username: str) -> ContributionsSnapshot | None:
        """Return the stored snapshot only while it is still fresh."""

        snapshot = self.get_last_known(username)
        if snapshot is None:
            return None
        if not snapshot.is_cache_valid(now=self._clock(), ttl=self._ttl):
            return None
        return snapshot

    def get_last_known(self, username: str) -> ContributionsSnapshot | None:
        """Return the stored snapshot regardless of its age."""

        raw_value = self._store.get(self.key_for(username))
        if raw_value is None:
            return None

        try:
            return ContributionsSnapshot.model_validate_json(raw_value)
        except ValidationError as exc:
            logger.warning(
                "Failed to decode cached contributions for %s: %s",
                username,
                exc.error_count(),
            )
            return None

    def put(self, snapshot: ContributionsSnapshot) -> None:
        self._store.set(self.key_for(snapshot.username), snapshot.model_dump_json())

    def clear(self, username: str) -> None:
        self._store.delete(self.key_for(username))
