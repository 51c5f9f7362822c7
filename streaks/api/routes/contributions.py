from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from fastapi import Response
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials

from streaks.api.dependencies import get_contributions_service
from streaks.api.dependencies import get_settings_store
from streaks.api.schemas.contributions import ContributionsResponse
from streaks.api.schemas.contributions import ContributionsStateResponse
from streaks.api.schemas.contributions import RecentContributionsResponse
from streaks.api.schemas.contributions import build_contributions_response
from streaks.api.schemas.contributions import build_recent_response
from streaks.core.security import bearer_scheme
from streaks.core.security import extract_bearer_token
from streaks.services.contributions_service import ContributionsService
from streaks.services.contributions_service import normalize_username
from streaks.services.errors import ContributionsError
from streaks.services.errors import InvalidTokenError
from streaks.services.errors import InvalidUsernameError
from streaks.services.errors import RateLimitedError
from streaks.services.errors import UserNotFoundError
from streaks.services.settings_store import AppSettings
from streaks.services.settings_store import SettingsStore


router = APIRouter()


def status_code_for(exc: ContributionsError) -> int:
    if isinstance(exc, InvalidUsernameError):
        return 400
    if isinstance(exc, InvalidTokenError):
        return 401
    if isinstance(exc, UserNotFoundError):
        return 404
    if isinstance(exc, RateLimitedError):
        return 429
    return 502


def respond_with_fallback(exc: ContributionsError) -> ContributionsResponse:
    """Return last-known data with the error, or raise when there is none."""

    if exc.stale_snapshot is None:
        raise HTTPException(status_code=status_code_for(exc), detail=str(exc)) from exc
    return build_contributions_response(exc.stale_snapshot, error=str(exc))


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness probe response for health checks."""

    return {"status": "ok"}


@router.get("/contributions")
def get_configured_contributions(
    refresh: bool = False,
    service: ContributionsService = Depends(get_contributions_service),
    settings_store: SettingsStore = Depends(get_settings_store),
) -> ContributionsStateResponse:
    """Load contributions for the username stored in settings."""

    view = service.load(settings_store.load().username, force_refresh=refresh)
    contributions = None
    if view.snapshot is not None:
        contributions = build_contributions_response(
            view.snapshot, error=view.error_message
        )
    return ContributionsStateResponse(
        state=view.state.value,
        error=view.error_message,
        contributions=contributions,
    )


@router.get("/contributions/me")
def get_authenticated_contributions(
    refresh: bool = False,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    service: ContributionsService = Depends(get_contributions_service),
) -> ContributionsResponse:
    """Return contributions for the GitHub user owning the bearer token."""

    token = extract_bearer_token(credentials)

    try:
        snapshot = service.fetch_authenticated(token, force_refresh=refresh)
    except ContributionsError as exc:
        return respond_with_fallback(exc)
    return build_contributions_response(snapshot)


@router.get("/contributions/{username}")
def get_contributions(
    username: str,
    refresh: bool = False,
    service: ContributionsService = Depends(get_contributions_service),
) -> ContributionsResponse:
    """Return the contribution grid and streaks for a public profile."""

    try:
        snapshot = service.fetch(username, force_refresh=refresh)
    except ContributionsError as exc:
        return respond_with_fallback(exc)
    return build_contributions_response(snapshot)


@router.get("/contributions/{username}/recent")
def get_recent_contributions(
    username: str,
    days: int | None = Query(default=None, ge=1, le=366),
    service: ContributionsService = Depends(get_contributions_service),
    settings_store: SettingsStore = Depends(get_settings_store),
) -> RecentContributionsResponse:
    """Return the compact recent-days window used by small displays."""

    app_settings = settings_store.load()
    try:
        snapshot = service.fetch(username)
    except ContributionsError as exc:
        if exc.stale_snapshot is None:
            raise HTTPException(
                status_code=status_code_for(exc), detail=str(exc)
            ) from exc
        snapshot = exc.stale_snapshot

    return build_recent_response(
        snapshot,
        days_count=days or app_settings.menu_bar_days_count,
        latest_count=app_settings.menu_bar_days_mode_count,
    )


@router.delete("/contributions/{username}/cache", status_code=204)
def clear_contributions_cache(
    username: str,
    service: ContributionsService = Depends(get_contributions_service),
) -> Response:
    """Drop the cached snapshot so the next request refetches."""

    normalized_username = normalize_username(username)
    if not normalized_username:
        raise HTTPException(status_code=400, detail="username cannot be empty")
    service.cache.clear(normalized_username)
    return Response(status_code=204)


@router.get("/settings")
def get_app_settings(
    settings_store: SettingsStore = Depends(get_settings_store),
) -> AppSettings:
    return settings_store.load()


@router.put("/settings")
def update_app_settings(
    payload: AppSettings,
    settings_store: SettingsStore = Depends(get_settings_store),
) -> AppSettings:
    """Persist settings; the username is trimmed before it is stored."""

    app_settings = payload.model_copy(update={"username": payload.username.strip()})
    settings_store.save(app_settings)
    return app_settings
