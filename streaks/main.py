from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from streaks.api.routes.contributions import router
from streaks.core.middleware import ContributionsRateLimitMiddleware
from streaks.core.observability import configure_logging
from streaks.core.observability import init_sentry
from streaks.db import create_db_engine
from streaks.db import create_session_factory
from streaks.db import init_db
from streaks.services.contributions_service import ContributionsService
from streaks.services.refresher import ContributionsRefresher
from streaks.services.settings_store import SettingsStore
from streaks.services.snapshot_cache import SnapshotCache
from streaks.settings import Settings
from streaks.storage import SqlKeyValueStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create tables and run the periodic refresher while the app is up."""

    init_db(app.state.engine)

    refresher: ContributionsRefresher | None = app.state.refresher
    if refresher is not None:
        refresher.start()

    yield

    if refresher is not None:
        await refresher.stop()
    app.state.engine.dispose()


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the API with its engine objects wired from settings."""

    app_settings = app_settings or Settings()
    configure_logging(app_settings)
    init_sentry(app_settings)

    engine = create_db_engine(app_settings.database_url)
    store = SqlKeyValueStore(create_session_factory(engine))
    cache = SnapshotCache(store, ttl=timedelta(seconds=app_settings.cache_ttl_seconds))
    service = ContributionsService(cache, settings=app_settings)
    settings_store = SettingsStore(store)

    app = FastAPI(title="GitHub Streaks", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.contributions_service = service
    app.state.settings_store = settings_store
    app.state.refresher = (
        ContributionsRefresher(
            service,
            settings_store,
            interval_seconds=app_settings.refresh_interval_seconds,
        )
        if app_settings.auto_refresh_enabled
        else None
    )

    app.add_middleware(
        ContributionsRateLimitMiddleware,
        requests_per_window=app_settings.rate_limit_per_minute,
        window_seconds=app_settings.rate_limit_window_seconds,
    )
    app.include_router(router)
    return app


app = create_app()
