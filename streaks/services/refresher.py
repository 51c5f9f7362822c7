import asyncio
import logging

from streaks.services.contributions_service import ContributionsService
from streaks.services.errors import ContributionsError
from streaks.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class ContributionsRefresher:
    """Periodically forces a refresh for the configured username."""

    def __init__(
        self,
        service: ContributionsService,
        settings_store: SettingsStore,
        interval_seconds: float,
    ) -> None:
        self._service = service
        self._settings_store = settings_store
        # Interval must stay positive.
        self.interval_seconds = max(1.0, interval_seconds)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def refresh_once(self) -> bool:
        """Run one forced refresh; returns True when new data was stored."""

        username = self._settings_store.load().username
        if not username.strip():
            logger.debug("Skipping scheduled refresh: no username configured")
            return False

        try:
            await asyncio.to_thread(self._service.fetch, username, True)
        except ContributionsError as exc:
            logger.warning("Scheduled refresh for %s failed: %s", username, exc)
            return False
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.refresh_once()
            except Exception:
                logger.exception("Scheduled contribution refresh crashed")
